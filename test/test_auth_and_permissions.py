from pathlib import Path

import pytest

from conftest import new_repo

from brilho.domain.errors import AuthorizationError, ValidationError
from brilho.domain.models import User
from brilho.services.auth_service import PERMISSIONS, AuthService, LoginPolicy


def test_first_sign_up_is_admin_then_sellers(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))
    assert not auth.has_users()

    owner = auth.sign_up("Dona@Brilho.com", "segredo1")
    helper = auth.sign_up("ajudante@brilho.com", "segredo2")

    assert owner.role == "admin"
    assert owner.email == "dona@brilho.com"
    assert helper.role == "seller"
    assert {u.email for u in auth.list_users()} == {"dona@brilho.com", "ajudante@brilho.com"}


def test_password_is_stored_hashed(tmp_path: Path):
    repo = new_repo(tmp_path)
    AuthService(repo).sign_up("dona@brilho.com", "segredo1")

    conn = repo._conn()
    cur = conn.cursor()
    cur.execute("SELECT password FROM users")
    stored = str(cur.fetchone()[0])
    conn.close()

    assert stored.startswith("pbkdf2_sha256$")
    assert "segredo1" not in stored


def test_sign_up_validation(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))

    with pytest.raises(ValidationError, match="6 caracteres"):
        auth.sign_up("a@b.com", "12345")
    with pytest.raises(ValidationError, match="Email inválido"):
        auth.sign_up("sem-arroba", "123456")

    auth.sign_up("a@b.com", "123456")
    with pytest.raises(ValidationError, match="Este email já está cadastrado"):
        auth.sign_up("A@B.com", "654321")


def test_sign_in(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))
    created = auth.sign_up("dona@brilho.com", "segredo1")

    user = auth.sign_in(" DONA@brilho.com ", "segredo1")
    assert user.id == created.id

    with pytest.raises(AuthorizationError, match="Email ou senha incorretos"):
        auth.sign_in("dona@brilho.com", "errada")
    with pytest.raises(AuthorizationError, match="Email ou senha incorretos"):
        auth.sign_in("ninguem@brilho.com", "segredo1")


def test_repeated_failures_lock_the_account(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path), LoginPolicy(max_failed_attempts=3, lockout_seconds=120))
    auth.sign_up("dona@brilho.com", "segredo1")

    for _ in range(2):
        with pytest.raises(AuthorizationError, match="incorretos"):
            auth.sign_in("dona@brilho.com", "errada")
    with pytest.raises(AuthorizationError, match="bloqueado"):
        auth.sign_in("dona@brilho.com", "errada")

    # even the right password waits for the lockout
    with pytest.raises(AuthorizationError, match="Tente novamente"):
        auth.sign_in("dona@brilho.com", "segredo1")


def test_successful_login_resets_failures(tmp_path: Path):
    repo = new_repo(tmp_path)
    auth = AuthService(repo, LoginPolicy(max_failed_attempts=3))
    auth.sign_up("dona@brilho.com", "segredo1")

    for _ in range(2):
        with pytest.raises(AuthorizationError):
            auth.sign_in("dona@brilho.com", "errada")
    auth.sign_in("dona@brilho.com", "segredo1")

    assert repo.get_user_security_state("dona@brilho.com") == (0, None)


def test_permission_matrix(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))
    admin = User(id=1, email="a@b.com", role="admin")
    seller = User(id=2, email="s@b.com", role="seller")
    viewer = User(id=3, email="v@b.com", role="viewer")

    assert all(auth.can(admin, action) for action in PERMISSIONS)
    assert auth.can(seller, "create_sale")
    assert not auth.can(seller, "delete_product")
    assert not auth.can(seller, "manage_users")
    assert auth.can(viewer, "export_report")
    assert not auth.can(viewer, "create_sale")
    assert not auth.can(admin, "unknown_action")
    assert not auth.can(None, "export_report")

    with pytest.raises(AuthorizationError, match="viewer"):
        auth.require_action(viewer, "import_excel")


def test_admin_creates_users_and_seller_cannot(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))
    admin = auth.sign_up("dona@brilho.com", "segredo1")

    auth.create_user(admin, "vend@brilho.com", "vende123", "seller")
    auth.create_user(admin, "olho@brilho.com", "olha123", "viewer")
    roles = {u.email: u.role for u in auth.list_users()}
    assert roles["vend@brilho.com"] == "seller"
    assert roles["olho@brilho.com"] == "viewer"

    with pytest.raises(ValidationError):
        auth.create_user(admin, "outro@brilho.com", "segredo9", "admin")
    with pytest.raises(ValidationError, match="já está cadastrado"):
        auth.create_user(admin, "vend@brilho.com", "vende123", "seller")

    seller = auth.sign_in("vend@brilho.com", "vende123")
    with pytest.raises(AuthorizationError):
        auth.create_user(seller, "x@brilho.com", "segredo9", "viewer")


def test_change_password(tmp_path: Path):
    auth = AuthService(new_repo(tmp_path))
    user = auth.sign_up("dona@brilho.com", "segredo1")

    with pytest.raises(AuthorizationError, match="incorreta"):
        auth.change_password(user, "errada", "novasenha", "novasenha")
    with pytest.raises(ValidationError, match="confirmação"):
        auth.change_password(user, "segredo1", "novasenha", "outra")
    with pytest.raises(ValidationError, match="diferente"):
        auth.change_password(user, "segredo1", "segredo1", "segredo1")

    auth.change_password(user, "segredo1", "novasenha", "novasenha")
    with pytest.raises(AuthorizationError):
        auth.sign_in("dona@brilho.com", "segredo1")
    assert auth.sign_in("dona@brilho.com", "novasenha").id == user.id
