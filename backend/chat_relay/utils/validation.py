from typing import Any, List


MAX_MESSAGE_CHARS = 2000


def validate_chat_input(message: Any, ai_model: Any = None, chat_id: Any = None) -> List[str]:
    """Return every violated rule for a chat request; empty when valid."""
    errors = []
    if not message:
        errors.append("Message is required")
    if not isinstance(message, str):
        errors.append("Message must be a string")
    else:
        if message and not message.strip():
            errors.append("Message cannot be empty")
        if len(message) > MAX_MESSAGE_CHARS:
            errors.append(f"Message is too long (max {MAX_MESSAGE_CHARS} characters)")
    if ai_model is not None and not isinstance(ai_model, str):
        errors.append("AI model must be a string")
    if chat_id is not None and not isinstance(chat_id, str):
        errors.append("Chat ID must be a string")
    return errors


def validate_prompt(prompt: Any) -> bool:
    return isinstance(prompt, str) and bool(prompt.strip())
