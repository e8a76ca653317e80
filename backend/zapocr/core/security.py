"""Helpers de validación común para webhooks y firmas."""

import hmac
from hashlib import sha256

SIGNATURE_HEADER = "X-Hub-Signature-256"


class SignatureError(Exception):
    """Excepción genérica para firmas inválidas."""


def verify_signature(
    secret: str, payload: bytes, signature: str | None, *, header_prefix: str = "sha256="
) -> None:
    """Verifica firmas HMAC-SHA256 enviadas por Meta.

    Args:
        secret: Clave secreta compartida (app secret).
        payload: Cuerpo bruto recibido, sin re-serializar.
        signature: Valor del header `X-Hub-Signature-256`.
        header_prefix: Prefijo esperado (ej. "sha256=").
    """
    if not signature:
        raise SignatureError("Missing signature header")
    expected_token = f"{header_prefix}{build_signature(secret, payload)}"
    if not hmac.compare_digest(expected_token.encode(), signature.encode()):
        raise SignatureError("Invalid signature received")


def build_signature(secret: str, payload: bytes) -> str:
    """Calcula el digest hexadecimal HMAC-SHA256 del cuerpo."""
    digest = hmac.new(secret.encode(), payload, sha256)
    return digest.hexdigest()


def tokens_match(provided: str | None, expected: str | None) -> bool:
    """Compara tokens estáticos en tiempo constante; un token esperado vacío nunca coincide."""
    if not expected or provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def mask_secret(value: str | None) -> str | None:
    """Enmascara secretos para logging seguro."""
    if not value:
        return value
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"
