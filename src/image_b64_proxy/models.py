from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

INLINE_FORMAT = "b64_json"


class GenerationRequest(BaseModel):
    """Inbound OpenAI-style generation request.

    Field values are kept exactly as the caller sent them; keys the proxy does
    not know about are kept as extras and forwarded untouched.
    """

    model_config = ConfigDict(extra="allow")

    model: Any = Field(default=None, description="Upstream model identifier")
    prompt: Any = Field(default=None, description="Primary text prompt")
    n: Any = Field(default=None, description="Number of images requested")
    response_format: Any = Field(
        default=None,
        description="'b64_json' for inline image data, anything else for upstream URLs",
    )
    size: Any = Field(default=None, description="Size spec e.g. '1024x1024'")

    def wants_inline(self) -> bool:
        return self.response_format == INLINE_FORMAT

    def to_upstream_payload(self) -> dict[str, Any]:
        """Return the fields the caller sent, with ``size`` renamed to ``image_size``."""
        payload = self.model_dump(mode="python", exclude_unset=True)
        if "size" in payload:
            payload["image_size"] = payload.pop("size")
        return payload


class ImageReference(BaseModel):
    """One generated image as reported by the upstream: a URL plus metadata."""

    model_config = ConfigDict(extra="allow", frozen=True)

    url: str | None = None
    revised_prompt: str | None = None


class GenerationResult(BaseModel):
    """Decoded upstream response.

    Only ``images`` is interpreted. ``timings``, ``seed`` and any unknown
    fields are opaque and re-serialized exactly as the upstream sent them.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    images: List[ImageReference] = Field(default_factory=list)
    timings: Any = None
    seed: Any = None

    @field_validator("images", mode="before")
    @classmethod
    def _null_images(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class EncodedItem(BaseModel):
    """One entry of the outbound ``data`` array."""

    model_config = ConfigDict(frozen=True)

    b64_json: str = Field(default="", description="Base64 image bytes; empty when the download failed")
    revised_prompt: str | None = None


class AssembledResponse(BaseModel):
    """OpenAI-compatible envelope returned for inline requests."""

    model_config = ConfigDict(frozen=True)

    created: int
    data: List[EncodedItem]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
