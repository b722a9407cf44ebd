"""
FastAPI entrypoint for the proofgate service.

Exposes the proof consumer (verification) and producer (export) paths over
HTTP. The service is stateless: each envelope is verified from its own
contents, the immutable startup configuration and the wall clock.

A rejected proof is a verification result, not an HTTP error. Only requests
that do not carry a well-formed envelope are refused at the HTTP layer.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from proofgate.app.codec.envelope_codec import dumps_envelope, loads_envelope
from proofgate.app.config import VerificationConfig
from proofgate.app.coordinator.dispatcher import ProofVerifier
from proofgate.app.core.settings import ServiceSettings, get_settings
from proofgate.app.errors import EnvelopeParseError
from proofgate.app.producer.export import export_proof
from proofgate.app.schemas.envelope import Amount, ProofKind
from proofgate.app.schemas.verdict import VerificationOutcome

logger = logging.getLogger("proofgate")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ExportMetadata(BaseModel):
    source_address: Optional[str] = None
    destination_address: Optional[str] = None
    mint_address: Optional[str] = None
    amount: Optional[Amount] = None

    model_config = ConfigDict(extra="forbid")


class ExportRequest(BaseModel):
    proof_type: ProofKind
    binary_data: str = Field(..., description="Base64-encoded raw proof bytes")
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Application setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="proofgate",
    description="Interchange and gating service for confidential-transfer proofs",
    version="0.1.0",
)


@app.on_event("startup")
def startup_event() -> None:
    """
    Application startup hook.

    Configuration is loaded once and treated as immutable for the lifetime
    of the process. The external cryptographic verifier, if any, is wired
    by an integration layer replacing app.state.verifier.
    """
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = VerificationConfig.from_env()

    app.state.settings = settings
    app.state.config = config
    app.state.verifier = ProofVerifier.from_config(config)

    logger.info(
        "proofgate started (schema %s..%s, max_age=%s, check_version=%s, verify_crypto=%s)",
        config.min_supported_schema_version,
        config.current_schema_version,
        config.max_age,
        config.check_version,
        config.verify_crypto,
    )


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------


@app.post(
    "/proofs/verify",
    response_model=VerificationOutcome,
    summary="Verify a proof envelope",
)
async def verify_envelope(request: Request) -> VerificationOutcome:
    """
    Run a proof envelope through the gating pipeline.

    The request body is the envelope document itself.
    """
    settings: ServiceSettings = app.state.settings
    body = await request.body()

    # ------------------------------------------------------------------
    # Hard resource safety limits (NOT trust decisions)
    # ------------------------------------------------------------------
    if len(body) > settings.max_envelope_size_kb * 1024:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Envelope exceeds maximum allowed size of "
                f"{settings.max_envelope_size_kb} KB"
            ),
        )

    try:
        envelope = loads_envelope(body)
    except EnvelopeParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    verifier: ProofVerifier = app.state.verifier
    return verifier.evaluate(envelope)


@app.post(
    "/proofs/export",
    summary="Build a new proof envelope",
)
def create_envelope(request: ExportRequest) -> Response:
    settings: ServiceSettings = app.state.settings

    try:
        raw_payload = base64.b64decode(request.binary_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=422,
            detail="binary_data is not valid base64",
        ) from exc

    try:
        envelope = export_proof(
            request.proof_type,
            raw_payload,
            request.metadata.model_dump(exclude_none=True),
            producer_version=settings.producer_version,
            schema_version=app.state.config.current_schema_version,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return Response(
        content=dumps_envelope(envelope).encode("utf-8"),
        media_type="application/json",
        headers={"X-Proof-Id": str(envelope.proof_id)},
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "proofgate",
        }
    )
