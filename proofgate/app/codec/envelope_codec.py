"""
Envelope codec.

Serializes proof envelopes to and from their textual interchange form
(pretty-printed JSON, UTF-8, one envelope per file).

Loading is all-or-nothing: either a fully validated ProofEnvelope is
returned, or an error is raised. A partially populated envelope is never
produced.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from proofgate.app.errors import (
    EnvelopeIOError,
    EnvelopeParseError,
    EnvelopeSerializationError,
)
from proofgate.app.schemas.envelope import ProofEnvelope

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# In-memory form
# ---------------------------------------------------------------------------


def dumps_envelope(envelope: ProofEnvelope) -> str:
    """Serialize an envelope to its textual interchange form."""
    try:
        document = envelope.to_wire()
        return json.dumps(
            document,
            ensure_ascii=False,
            allow_nan=False,
            indent=2,
        )
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EnvelopeSerializationError(
            f"Envelope {envelope.proof_id} is not representable: {exc}"
        ) from exc


def loads_envelope(text: Union[str, bytes]) -> ProofEnvelope:
    """
    Parse an envelope from its textual interchange form.

    Raises EnvelopeParseError for malformed JSON, wrong shape, unknown keys,
    wrong field types or unparseable timestamps. The version string is
    loaded as-is; the dispatcher rejects an unparseable one as
    IncompatibleVersion.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EnvelopeParseError(
                "Envelope is not valid UTF-8", detail=str(exc)
            ) from exc

    try:
        return ProofEnvelope.model_validate_json(text)
    except ValidationError as exc:
        raise EnvelopeParseError(
            "Envelope is not well-formed", detail=str(exc)
        ) from exc


# ---------------------------------------------------------------------------
# File form
# ---------------------------------------------------------------------------


def export_envelope(envelope: ProofEnvelope, destination: PathLike) -> Path:
    """
    Write an envelope to `destination`.

    The envelope is serialized first, written to a sibling temporary file
    and moved into place with os.replace, so `destination` either keeps its
    previous content or holds the complete envelope.
    """
    path = Path(destination)
    text = dumps_envelope(envelope)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_path = Path(handle.name)
            handle.write(text)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise EnvelopeIOError(
            f"Cannot write envelope to {path}: {exc}"
        ) from exc

    logger.info(
        "Exported envelope proof_id=%s kind=%s to %s",
        envelope.proof_id,
        envelope.proof_kind.value,
        path,
    )
    return path


def import_envelope(source: PathLike) -> ProofEnvelope:
    """Read and parse an envelope from `source`."""
    path = Path(source)

    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise EnvelopeIOError(
            f"Cannot read envelope from {path}: {exc}"
        ) from exc

    envelope = loads_envelope(raw)

    logger.debug(
        "Imported envelope proof_id=%s kind=%s version=%s from %s",
        envelope.proof_id,
        envelope.proof_kind.value,
        envelope.schema_version,
        path,
    )
    return envelope
