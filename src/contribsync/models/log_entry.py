"""Raw commit record as read from the history log."""

from datetime import datetime

from pydantic import BaseModel


class LogEntry(BaseModel):
    """One commit of the history log, before it is validated for storage."""

    sha1: str
    author: str
    message: str = ""
    authored_at: datetime

    model_config = {"frozen": True}
