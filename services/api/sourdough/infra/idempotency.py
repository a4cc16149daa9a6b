"""Idempotency-Key handling for create-style POST endpoints.

A key is scoped by user and route. The first request claims it with
SET NX while processing; the finished response is stored for a day and
replayed to later requests carrying the same key and payload.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from .redis_client import get_redis

logger = logging.getLogger("sourdough.idempotency")

DONE_TTL_SEC = 60 * 60 * 24
PROCESSING_TTL_SEC = 60

IDEMPOTENCY_HEADER = "Idempotency-Key"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _hash_request(method: str, path: str, body_bytes: bytes) -> str:
    h = hashlib.sha256()
    h.update(method.encode("utf-8"))
    h.update(b"|")
    h.update(path.encode("utf-8"))
    h.update(b"|")
    h.update(body_bytes or b"")
    return h.hexdigest()


def _idemp_redis_key(user_id: int, route_key: str, idem_key: str) -> str:
    return f"sourdough:idemp:{user_id}:{route_key}:{idem_key}"


async def idempotency_precheck(
    request: Request, *, user_id: int, route_key: str
) -> Union[tuple[str, str], JSONResponse, None]:
    """Decide how to handle a request that may carry an Idempotency-Key.

    Returns None when the header is absent (plain request), a JSONResponse
    when a stored response should be replayed, or (redis_key, request_hash)
    once the key has been claimed and the caller should proceed.
    """
    idem_key = request.headers.get(IDEMPOTENCY_HEADER)
    if not idem_key:
        return None

    body_bytes = await request.body()
    req_hash = _hash_request(request.method, request.url.path, body_bytes)

    rkey = _idemp_redis_key(user_id, route_key, idem_key)
    r = await get_redis()

    raw = await r.get(rkey)
    if raw:
        data = json.loads(raw)
        if data.get("request_hash") and data["request_hash"] != req_hash:
            raise HTTPException(status_code=409, detail="Idempotency-Key reused with different request payload")
        if data.get("state") == "done":
            logger.info(f"Replaying stored response for {route_key} key {idem_key}")
            return JSONResponse(
                content=data.get("body"),
                status_code=int(data.get("status", 200)),
                headers=data.get("headers") or {},
            )
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    processing_payload = {
        "state": "processing",
        "status": None,
        "body": None,
        "created_at": _iso_now(),
        "completed_at": None,
        "request_hash": req_hash,
    }
    ok = await r.set(rkey, json.dumps(processing_payload), ex=PROCESSING_TTL_SEC, nx=True)
    if not ok:
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    return (rkey, req_hash)


async def idempotency_store_result(
    redis_key: str, req_hash: str, *, status: int, body: dict, headers: Optional[dict] = None
):
    r = await get_redis()
    payload = {
        "state": "done",
        "status": int(status),
        "headers": headers or {},
        "body": body,
        "completed_at": _iso_now(),
        "request_hash": req_hash,
    }
    await r.set(redis_key, json.dumps(payload), ex=DONE_TTL_SEC)


async def idempotency_clear_key(redis_key: str):
    """Release a claimed key after a failed request so the client can retry."""
    r = await get_redis()
    await r.delete(redis_key)
