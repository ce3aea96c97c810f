"""Hydration configuration and its normalization."""

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat

from hydrator.core.settings import Settings

MEGABYTE = 1024 * 1024
DEFAULT_MULTIPART_FORM_DATA_BYTES = 128 * MEGABYTE


class MemoryAllocation(BaseModel):
    """Memory ceilings, in megabytes."""

    multipart_form_data: NonNegativeFloat | None = None


class HydrationOptions(BaseModel):
    """Server-side configuration applied to every hydrated request."""

    model_config = ConfigDict(frozen=True)

    headers: dict[str, str] | None = None
    default_response_content_type: str | None = None
    memory_allocation: MemoryAllocation = Field(default_factory=MemoryAllocation)

    @classmethod
    def from_settings(cls, settings: Settings) -> "HydrationOptions":
        return cls(
            default_response_content_type=settings.DEFAULT_RESPONSE_CONTENT_TYPE,
            memory_allocation=MemoryAllocation(multipart_form_data=settings.MULTIPART_FORM_DATA_MB),
        )


class NormalizedOptions(BaseModel):
    """Options with every limit resolved to bytes."""

    model_config = ConfigDict(frozen=True)

    headers: dict[str, str] | None = None
    default_response_content_type: str | None = None
    multipart_form_data_bytes: int = DEFAULT_MULTIPART_FORM_DATA_BYTES


def normalize_options(options: HydrationOptions | None = None) -> NormalizedOptions:
    """Resolve megabyte limits to bytes without touching the caller's options.

    A missing or zero multipart allocation falls back to 128 MiB.
    """
    options = options or HydrationOptions()
    megabytes = options.memory_allocation.multipart_form_data
    limit = int(megabytes * MEGABYTE) if megabytes else DEFAULT_MULTIPART_FORM_DATA_BYTES
    return NormalizedOptions(
        headers=dict(options.headers) if options.headers else None,
        default_response_content_type=options.default_response_content_type,
        multipart_form_data_bytes=limit,
    )
