"""SHA-256 fingerprints for render caching"""

import hashlib
import json
from typing import Any


def sha256(content: str | bytes) -> str:
    """Return hex-encoded SHA-256 hash of content (text is encoded as UTF-8)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def _normalize(value: Any) -> Any:
    """Stringify mapping keys at every depth so mixed key types still sort."""
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def fingerprint(payload: Any) -> str:
    """Stable hash of a JSON-serializable payload; keys are sorted, non-JSON values stringified."""
    return sha256(json.dumps(_normalize(payload), sort_keys=True, default=str, ensure_ascii=False))
