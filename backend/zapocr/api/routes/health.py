"""Endpoints de salud mínimos para validaciones rápidas."""
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse, summary="Liveness")
def liveness() -> str:
    return "OK"


@router.get("/health", summary="Estado del servicio")
def healthcheck() -> dict[str, str]:
    """Retorna un payload estático indicando que la API está viva."""
    return {"status": "ok"}
