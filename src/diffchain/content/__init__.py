"""Content classification — binary/code detection and normalization."""

from diffchain.content.classifier import decode_text, encode_text, is_binary, is_code, normalize_code
from diffchain.content.registry import BUILTIN_CODE_EXTENSIONS, ExtensionRegistry, RegistryError, build_registry

__all__ = [
    "BUILTIN_CODE_EXTENSIONS",
    "ExtensionRegistry",
    "RegistryError",
    "build_registry",
    "decode_text",
    "encode_text",
    "is_binary",
    "is_code",
    "normalize_code",
]
