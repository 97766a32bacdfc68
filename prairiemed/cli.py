"""Operator commands exposed as project scripts.

  runserver [--host=0.0.0.0] [--port=8000] [--reload]
  migrate [alembic args...]       # no args: upgrade to head
  run-tests [pytest args...]
  init-env                        # seed .env from .env.example
  create-user --email=a@b.com --roles=doctor,nurse [--org=<id>] [--facility=<id>]

Also runnable as ``python -m prairiemed.cli <command> [args]``.
"""
from __future__ import annotations

import getpass
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _argv() -> List[str]:
    return sys.argv[1:]


def _option(name: str, default: Optional[str] = None) -> Optional[str]:
    prefix = f"--{name}="
    for arg in _argv():
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return default


def _fail(message: str) -> None:
    print(message, file=sys.stderr)
    sys.exit(1)


def runserver() -> None:
    """Serve the app factory with uvicorn. Reload is off unless ``--reload`` is passed."""
    import uvicorn

    host = _option("host", "127.0.0.1")
    port_value = _option("port", "8000")
    if not port_value.isdigit():
        _fail(f"Invalid port: {port_value}")
    reload = "--reload" in _argv()

    print(f"PrairieMed auth listening on {host}:{port_value} (reload={reload})")
    uvicorn.run("prairiemed.main:create_app", factory=True, host=host, port=int(port_value), reload=reload)


def run_migrations() -> None:
    subprocess.run(["alembic"] + (_argv() or ["upgrade", "head"]), check=True, cwd=PROJECT_ROOT)


def run_tests() -> None:
    subprocess.run(["pytest"] + _argv(), check=True, cwd=PROJECT_ROOT)


def init_env() -> None:
    target = PROJECT_ROOT / ".env"
    template = PROJECT_ROOT / ".env.example"
    if target.exists():
        print(f"Leaving existing {target} untouched")
    elif not template.exists():
        _fail(f"No template at {template}")
    else:
        shutil.copy(template, target)
        print(f"Wrote {target}; set JWT_ACCESS_SECRET and JWT_REFRESH_SECRET before starting")


def create_user() -> None:
    """Create an active user with an argon2 password and the given roles.

    Roles that do not exist yet are created. The password is read from the
    terminal, never from argv.
    """
    from sqlalchemy import select
    from prairiemed.core.database import SessionLocal
    from prairiemed.core.rbac import RoleSet
    from prairiemed.core.security import hash_password
    from prairiemed.models.user import Role, User

    email = (_option("email") or input("Email: ")).strip().lower()
    roles = RoleSet((_option("roles") or "").split(","))
    if not email:
        _fail("An email is required.")

    password = getpass.getpass("Password: ")
    if not password:
        _fail("An empty password is not allowed.")
    if getpass.getpass("Repeat password: ") != password:
        _fail("Passwords do not match.")

    db = SessionLocal()
    try:
        if db.execute(select(User.id).where(User.email == email)).first():
            _fail(f"{email} is already registered.")

        user = User(
            email=email,
            password_hash=hash_password(password),
            organization_id=_option("org"),
            facility_id=_option("facility"),
            is_active=True,
        )
        for name in sorted(roles):
            role = db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
            user.roles.append(role or Role(name=name))
        db.add(user)
        db.commit()
        print(f"Created {user.email} ({user.id}) with roles: {', '.join(sorted(roles)) or 'none'}")
    finally:
        db.close()


COMMANDS: Dict[str, Callable[[], None]] = {
    "runserver": runserver,
    "migrate": run_migrations,
    "run-tests": run_tests,
    "init-env": init_env,
    "create-user": create_user,
}


if __name__ == "__main__":
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        print(__doc__)
        sys.exit(0 if len(sys.argv) < 2 else 2)
    command = COMMANDS[sys.argv.pop(1)]
    command()
