# camfleet/errors.py
"""
Error taxonomy for dashboard operations.

Services raise CamFleetError subclasses carrying the single user-facing message;
main.py turns them into JSON responses. Gateway and storage failures are
classified here so every mutation reports them the same way.
"""

from typing import Optional

# Postgres SQLSTATE codes, also produced by SqlGateway for SQLite
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"

POLICY_MARKERS = ("security policy", "permission denied")


class GatewayError(Exception):
    """Raised by a Gateway when the remote store rejects or cannot serve a call."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageError(Exception):
    """Raised by a BlobStorage backend; the message is what the backend reported."""


class CamFleetError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(CamFleetError):
    status_code = 422


class NotFound(CamFleetError):
    status_code = 404


class ConfirmationRequired(CamFleetError):
    """Destructive call without confirm=true; the message is the confirmation prompt."""
    status_code = 409


class LayoutLocked(CamFleetError):
    status_code = 409


class OperationFailed(CamFleetError):
    status_code = 502

    def __init__(self, message: str, kind: str = "unknown"):
        super().__init__(message)
        self.kind = kind  # policy | integrity | unknown
        if kind == "policy":
            self.status_code = 403
        elif kind == "integrity":
            self.status_code = 409


def is_policy_violation(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in POLICY_MARKERS)


def failure_from_gateway(
    error: GatewayError,
    base_message: str,
    table: str,
    unique_message: Optional[str] = None,
    integrity_message: Optional[str] = None,
) -> OperationFailed:
    """
    Build the one message shown for a failed mutation:
    duplicate → unique_message, policy denial → contact an administrator,
    foreign-key block → integrity_message, anything else → raw cause appended.
    """
    if error.code == UNIQUE_VIOLATION and unique_message:
        return OperationFailed(unique_message, kind="integrity")
    if is_policy_violation(error.message):
        return OperationFailed(
            f'A operação foi bloqueada por uma política de segurança (RLS) na tabela "{table}". '
            f"Contate um administrador para revisar as permissões.",
            kind="policy",
        )
    if error.code == FOREIGN_KEY_VIOLATION and integrity_message:
        return OperationFailed(integrity_message, kind="integrity")
    return OperationFailed(f"{base_message}\n\nCausa provável: {error.message or 'Erro desconhecido.'}")


class UploadFailed(CamFleetError):
    """
    Background image upload failure.
    kind: permission (needs administrator action), transport or url (retry may help).
    """

    MESSAGES = {
        "permission": (
            "O upload foi bloqueado por falta de permissão no Storage.",
            "Ação necessária: um administrador precisa configurar as políticas de acesso "
            "do bucket de layouts. Sem isso, os uploads não funcionarão.",
        ),
        "transport": (
            "A comunicação com o servidor de arquivos falhou durante o upload.",
            "Verifique sua conexão e tente novamente. Erro original: {detail}",
        ),
        "url": (
            "O upload foi bem-sucedido, mas não foi possível obter a URL final.",
            "Isso pode indicar um problema temporário no servidor de arquivos. Tente novamente.",
        ),
    }

    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind
        self.detail = detail
        summary, instructions = self.MESSAGES[kind]
        super().__init__(
            f"Falha ao carregar a imagem do layout:\n\n{summary}\n\n{instructions.format(detail=detail)}"
        )
        self.status_code = 403 if kind == "permission" else 502

    @property
    def needs_admin(self) -> bool:
        return self.kind == "permission"

    @classmethod
    def from_storage_error(cls, error: StorageError) -> "UploadFailed":
        message = str(error)
        if is_policy_violation(message) or "row-level security" in message.lower():
            return cls("permission", message)
        return cls("transport", message)
