"""
Common building blocks for jsonkit.

Modules:
- paths: path normalization and the fluent PathBuilder
- query: path/condition resolver returning Reference handles
- codec: JSON/BASE64/ROT13/UU transport encoding
- crypto: symmetric encryption of serialized documents
- remote: HTTP import source
- errors: error taxonomy
"""

__all__ = [
    "paths",
    "query",
    "codec",
    "crypto",
    "remote",
    "errors",
]
