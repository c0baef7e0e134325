"""Product image acquisition."""

from autofill.images.resolver import ImageSourceResolver, split_data_url, to_data_url
from autofill.images.types import (
    DEFAULT_MIME_TYPE,
    EncodedImage,
    ImageReference,
    InlineBase64,
    RemoteURL,
)

__all__ = [
    "DEFAULT_MIME_TYPE",
    "EncodedImage",
    "ImageReference",
    "ImageSourceResolver",
    "InlineBase64",
    "RemoteURL",
    "split_data_url",
    "to_data_url",
]
