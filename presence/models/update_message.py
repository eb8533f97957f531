"""
Update messages for the rich presence config source.

A config source (a static JSON file or the stdout of an executable) produces
one update message per JSON document. The fields are owned by the presenter
that consumes the updates, so the model accepts any JSON object as-is.
"""

from pydantic import BaseModel, ConfigDict


class UpdateMessage(BaseModel):
    """One activity update, kept exactly as it was decoded."""

    model_config = ConfigDict(extra="allow", frozen=True)


def parse_update_message(text: str | bytes) -> UpdateMessage:
    """
    Parse one JSON document into an UpdateMessage.

    Args:
        text: Raw JSON text of a single document

    Returns:
        The parsed update message

    Raises:
        pydantic.ValidationError: If the text is not valid JSON or not a JSON object
    """
    return UpdateMessage.model_validate_json(text)
