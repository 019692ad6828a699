"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .conversations import (
    AIHealthResponse,
    BusinessEmailGenerateRequest,
    BusinessEmailGenerateResponse,
    ComplexOrderProcessRequest,
    ComplexOrderProcessResponse,
    ConversationProcessRequest,
    ConversationProcessResponse,
)

__all__ = [
    "AIHealthResponse",
    "BusinessEmailGenerateRequest",
    "BusinessEmailGenerateResponse",
    "ComplexOrderProcessRequest",
    "ComplexOrderProcessResponse",
    "ConversationProcessRequest",
    "ConversationProcessResponse",
    "ErrorResponse",
]
