from __future__ import annotations

import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from signoff.config import Settings, get_settings
from signoff.errors import TransientError, ValidationError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*),(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}


@dataclass(frozen=True, slots=True)
class SignatureArtifact:
    content: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.mime_type, "png")


def decode_data_url(data_url: str) -> SignatureArtifact:
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValidationError("Invalid data URL")

    mime = match.group("mime") or "text/plain"
    params = match.group("params") or ""
    payload = match.group("data")
    if ";base64" not in params:
        raise ValidationError("Signature data URL must be base64 encoded")

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Signature data URL is not valid base64") from exc
    return SignatureArtifact(content=content, mime_type=mime)


def coerce_signature(value: str | bytes | SignatureArtifact | None) -> SignatureArtifact:
    """Accept a data URL, raw bytes or an artifact; reject anything empty."""
    if isinstance(value, SignatureArtifact):
        artifact = value
    elif isinstance(value, (bytes, bytearray)):
        artifact = SignatureArtifact(content=bytes(value))
    elif isinstance(value, str) and value.strip():
        artifact = decode_data_url(value)
    else:
        raise ValidationError("Signature is required.")

    if not artifact.content:
        raise ValidationError("Signature is required.")
    if not artifact.mime_type.startswith("image/"):
        raise ValidationError(f"Signature must be an image, got '{artifact.mime_type}'")
    return artifact


def artifact_filename(actor_id: str, artifact: SignatureArtifact, *, approval: bool = False) -> str:
    millis = int(datetime.now(UTC).timestamp() * 1000)
    infix = "-approval" if approval else ""
    return f"{actor_id}{infix}-{millis}-{uuid.uuid4().hex[:8]}.{artifact.extension}"


class LocalArtifactStore:
    """Writes signature images under ``artifact_dir`` and hands back their public URL."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.root = Path(self.settings.artifact_dir)

    def upload_artifact(self, content: bytes, filename: str) -> str:
        target = self.root / filename
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if target.exists():
                raise FileExistsError(str(target))
            target.write_bytes(content)
        except OSError as exc:
            logger.error("Signature upload failed path=%s: %s", target, exc)
            raise TransientError(f"could not store signature artifact {filename}") from exc
        return self.public_url(filename)

    def public_url(self, filename: str) -> str:
        return f"{self.settings.artifact_base_url.rstrip('/')}/{filename}"

    def resolve(self, filename: str) -> Path | None:
        candidate = (self.root / filename).resolve()
        if candidate.parent != self.root.resolve() or not candidate.is_file():
            return None
        return candidate
