from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
import sqlite3

from brilho.domain.errors import AuthorizationError, ValidationError
from brilho.domain.models import User

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class LoginPolicy:
    min_password_length: int = 6
    max_failed_attempts: int = 5
    lockout_seconds: int = 60


PERMISSIONS: dict[str, set[str]] = {
    "create_product": {"admin", "seller"},
    "edit_product": {"admin", "seller"},
    "delete_product": {"admin"},
    "record_stock": {"admin", "seller"},
    "manage_customers": {"admin", "seller"},
    "delete_customer": {"admin"},
    "create_sale": {"admin", "seller"},
    "cancel_sale": {"admin", "seller"},
    "import_excel": {"admin", "seller"},
    "export_report": {"admin", "seller", "viewer"},
    "manage_users": {"admin"},
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _clean_email(email: str) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("Email é obrigatório.")
    if not EMAIL_RE.match(value):
        raise ValidationError("Email inválido.")
    return value


class AuthService:
    def __init__(self, repo, policy: LoginPolicy | None = None):
        self.repo = repo
        self.policy = policy or LoginPolicy()

    def _check_password(self, password: str) -> str:
        if len(password or "") < self.policy.min_password_length:
            raise ValidationError(
                f"A senha deve ter pelo menos {self.policy.min_password_length} caracteres."
            )
        return password

    def list_users(self) -> list[User]:
        return self.repo.list_users()

    def has_users(self) -> bool:
        return self.repo.count_active_users() > 0

    def sign_up(self, email: str, password: str) -> User:
        """The first account becomes admin; later self sign-ups are sellers."""
        email_clean = _clean_email(email)
        self._check_password(password)
        if self.repo.user_exists(email_clean):
            raise ValidationError("Este email já está cadastrado")

        role = "seller" if self.has_users() else "admin"
        try:
            uid = self.repo.create_user(email_clean, password, role)
        except sqlite3.IntegrityError as exc:
            raise ValidationError("Este email já está cadastrado") from exc

        log.info("user_signed_up user_id=%s role=%s", uid, role)
        return User(id=uid, email=email_clean, role=role)

    def sign_in(self, email: str, password: str) -> User:
        email_clean = (email or "").strip().lower()
        if not email_clean or not password:
            raise AuthorizationError("Email ou senha incorretos")

        state = self.repo.get_user_security_state(email_clean)
        if state:
            _attempts, locked_until = state
            if locked_until:
                until = datetime.fromisoformat(locked_until)
                now = _utcnow()
                if now < until:
                    remaining = int((until - now).total_seconds()) + 1
                    raise AuthorizationError(f"Muitas tentativas. Tente novamente em {remaining}s.")

        user = self.repo.authenticate_user(email_clean, password)
        if not user:
            attempts, locked_until = self.repo.record_login_failure(
                email_clean,
                self.policy.max_failed_attempts,
                self.policy.lockout_seconds,
            )
            if locked_until is not None:
                log.warning("login_locked email=%s", email_clean)
                raise AuthorizationError("Muitas tentativas. Usuário bloqueado temporariamente.")
            log.info("login_failed email=%s attempts=%s", email_clean, attempts)
            raise AuthorizationError("Email ou senha incorretos")

        self.repo.clear_login_guard(user.id)
        log.info("user_signed_in user_id=%s", user.id)
        return user

    def can(self, user: User | None, action: str) -> bool:
        if user is None:
            return False
        allowed_roles = PERMISSIONS.get(action)
        if not allowed_roles:
            return False
        return user.role in allowed_roles

    def require_action(self, user: User | None, action: str) -> None:
        if not self.can(user, action):
            role = user.role if user else "anônimo"
            raise AuthorizationError(f"Perfil '{role}' não tem permissão para '{action}'.")

    def create_user(self, actor: User, email: str, password: str, role: str) -> int:
        self.require_action(actor, "manage_users")

        email_clean = _clean_email(email)
        self._check_password(password)
        target_role = (role or "").strip().lower()
        if target_role not in {"seller", "viewer"}:
            raise ValidationError("Só é possível criar usuários vendedor ou visualizador.")
        if self.repo.user_exists(email_clean):
            raise ValidationError("Este email já está cadastrado")

        uid = self.repo.create_user(email_clean, password, target_role)
        log.info("user_created user_id=%s role=%s actor=%s", uid, target_role, actor.id)
        return uid

    def change_password(self, actor: User, current_password: str, new_password: str, confirm_password: str) -> None:
        if not current_password:
            raise ValidationError("Informe a senha atual.")
        self._check_password(new_password)
        if new_password != confirm_password:
            raise ValidationError("A confirmação da senha não confere.")
        if new_password == current_password:
            raise ValidationError("A nova senha deve ser diferente da atual.")

        if not self.repo.change_user_password(actor.id, current_password, new_password):
            raise AuthorizationError("Senha atual incorreta.")
        log.info("password_changed user_id=%s", actor.id)
