"""
Envelope schema shared by every router.
"""
from typing import Any, Optional
from ninja import Schema


class EnvelopeOut(Schema):
    success: bool
    message: Optional[str] = None
    data: Any = None
