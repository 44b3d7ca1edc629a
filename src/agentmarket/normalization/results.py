"""Normalized result shapes.

Every webhook response, and every failure to get one, is mapped into one of
two shapes before it reaches storage or the UI:

- :class:`SuccessResult`: ``summary``, ``text_output``, optional
  ``media_links`` and provider passthrough fields
- :class:`FailureResult`: ``error: true`` with ``message``, ``details`` and
  ``status``

The dict form produced by ``to_dict()`` is the public contract; consumers
pattern-match on those field names.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

# Keys owned by SuccessResult; anything else in a raw body is passthrough
_SUCCESS_KEYS = ("summary", "text_output", "media_links", "original_response", "fallback_used")


class MediaLink(BaseModel):
    """A media item attached to a result."""

    type: str
    url: str
    description: Optional[str] = None

    class Config:
        """Pydantic config."""

        extra = "allow"


class SuccessResult(BaseModel):
    """A normalized successful agent response.

    Attributes:
        summary: Short human-readable outcome
        text_output: Primary payload, a string or a sequence of strings
            (provider data is passed through as-is)
        media_links: Optional media attachments
        original_response: Raw upstream body, kept for audit
        fallback_used: True when the output came from a local fallback
        extra: Provider-specific passthrough fields, flattened by to_dict()
    """

    summary: Optional[str] = None
    text_output: Any = None
    media_links: Optional[list[MediaLink]] = None
    original_response: Any = None
    fallback_used: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def error(self) -> bool:
        return False

    @classmethod
    def from_raw(cls, body: dict[str, Any]) -> "SuccessResult":
        """Wrap an untransformed upstream body.

        Known keys populate the matching attributes; everything else is kept
        as passthrough.
        """
        extra = {key: value for key, value in body.items() if key not in _SUCCESS_KEYS}
        summary = body.get("summary")
        media_links: Optional[list[MediaLink]] = None
        raw_links = body.get("media_links")
        if raw_links is not None:
            try:
                media_links = [MediaLink.model_validate(link) for link in raw_links]
            except (TypeError, ValidationError):
                # Not in the expected shape, keep it untouched
                extra["media_links"] = raw_links
        return cls(
            summary=str(summary) if summary is not None else None,
            text_output=body.get("text_output"),
            media_links=media_links,
            original_response=body.get("original_response"),
            fallback_used=bool(body.get("fallback_used", False)),
            extra=extra,
        )

    def ensure_summary(self) -> "SuccessResult":
        """Synthesize ``Generated N output(s)`` when output exists without a summary."""
        if self.summary or self.text_output is None or self.text_output == "":
            return self
        count = len(self.text_output) if isinstance(self.text_output, list) else 1
        return self.model_copy(update={"summary": f"Generated {count} output(s)"})

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public result shape."""
        data: dict[str, Any] = dict(self.extra)
        if self.summary is not None:
            data["summary"] = self.summary
        if self.text_output is not None:
            data["text_output"] = self.text_output
        if self.media_links is not None:
            data["media_links"] = [link.model_dump(exclude_none=True) for link in self.media_links]
        if self.original_response is not None:
            data["original_response"] = self.original_response
        if self.fallback_used:
            data["fallback_used"] = True
        return data


class FailureResult(BaseModel):
    """A normalized failure.

    Attributes:
        message: Human-readable failure description
        details: Upstream body or error detail
        status: Upstream HTTP status, when a response was received
        original_response: Raw upstream body when the failure was reported
            inside a 2xx response
    """

    message: str
    details: Any = None
    status: Optional[int] = None
    original_response: Any = None

    @property
    def error(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public result shape."""
        data: dict[str, Any] = {"error": True, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        if self.status is not None:
            data["status"] = self.status
        if self.original_response is not None:
            data["original_response"] = self.original_response
        return data


NormalizedResult = Union[SuccessResult, FailureResult]
