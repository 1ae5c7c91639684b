"""FastAPI application assembly.

Run with:  uvicorn --factory api.app:build_app

create_app() wires already-built collaborators (tests pass fakes);
build_app() loads secrets from Vault once and builds the real ones.

Middleware stack (outermost to innermost):
  1. RequestIDMiddleware -- tags every request with X-Request-ID
  2. AuthMiddleware      -- session gate for every non-public path
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.base import success_response
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.authenticator import CredentialAuthenticator
from auth.config import AuthConfig, MfaConfig
from auth.database import AuthDatabase
from auth.gate import SessionGate
from auth.mfa import MfaDelegate
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from auth.tokens import TokenStore
from clients.email_client import EmailGatewayClient
from clients.mfa_client import MfaProviderClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient

logger = logging.getLogger(__name__)


def create_app(
    auth_service: AuthService,
    session_manager: SessionManager,
    gate: SessionGate,
    lifespan=None,
) -> FastAPI:
    """Build the FastAPI app around injected auth components."""
    app = FastAPI(title="sessiongate", lifespan=lifespan)

    # Added innermost first
    app.add_middleware(AuthMiddleware, session_manager=session_manager, gate=gate)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)
    app.include_router(create_auth_router(auth_service), prefix="/auth")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"})

    return app


def close_clients_on_shutdown(valkey: ValkeyClient):
    """Lifespan that releases the Valkey connection and Postgres pools on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        valkey.close()
        PostgresClient.close_all_pools()
        logger.info("Connection pools closed")

    return lifespan


def build_app(config: AuthConfig | None = None, mfa_config: MfaConfig | None = None) -> FastAPI:
    """Build the production app from Vault secrets."""
    from clients.vault_client import (
        get_database_url,
        get_email_config,
        get_mfa_config,
        get_valkey_url,
    )

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = config or AuthConfig()
    mfa_config = mfa_config or get_mfa_config()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    email_client = EmailGatewayClient(**get_email_config())

    auth_db = AuthDatabase(postgres)
    session_manager = SessionManager(valkey, config)
    gate = SessionGate(auth_db)

    auth_service = AuthService(
        config=config,
        auth_db=auth_db,
        authenticator=CredentialAuthenticator(auth_db),
        session_manager=session_manager,
        token_store=TokenStore(auth_db, config),
        mfa_delegate=MfaDelegate(MfaProviderClient(mfa_config)),
        email_client=email_client,
        security_logger=SecurityLogger(postgres),
    )

    logger.info(f"sessiongate ready, MFA provider {mfa_config.site_url}")
    return create_app(
        auth_service, session_manager, gate, lifespan=close_clients_on_shutdown(valkey)
    )
