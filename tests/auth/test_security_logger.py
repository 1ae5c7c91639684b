"""Tests for SecurityLogger - audit trail writes."""

from unittest.mock import Mock
from uuid import uuid4

import psycopg2
import pytest
from psycopg2.extras import Json

from auth.security_logger import SecurityEvent, SecurityLogger
from clients.postgres_client import PostgresClient


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


@pytest.fixture
def security_logger(postgres):
    return SecurityLogger(postgres)


class TestLog:
    def test_inserts_event(self, security_logger, postgres):
        user_id = uuid4()

        security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email="a@x.com",
            user_id=user_id,
            ip_address="10.0.0.1",
            user_agent="pytest",
        )

        query, params = postgres.execute_returning.call_args.args
        assert "INSERT INTO security_events" in query
        assert params[:5] == ("login_succeeded", "a@x.com", str(user_id), "10.0.0.1", "pytest")
        assert params[5] is None

    def test_details_wrapped_as_json(self, security_logger, postgres):
        security_logger.log(SecurityEvent.LOGIN_FAILED, details={"reason": "invalid_credentials"})

        details = postgres.execute_returning.call_args.args[1][5]
        assert isinstance(details, Json)
        assert details.adapted == {"reason": "invalid_credentials"}

    def test_anonymous_event(self, security_logger, postgres):
        security_logger.log(SecurityEvent.SESSION_REVOKED)

        params = postgres.execute_returning.call_args.args[1]
        assert params[1] is None
        assert params[2] is None

    def test_store_failure_does_not_raise(self, security_logger, postgres, caplog):
        postgres.execute_returning.side_effect = psycopg2.OperationalError("down")

        security_logger.log(SecurityEvent.USER_CREATED, email="a@x.com")

        assert "user_created" in caplog.text


class TestSecurityEvent:
    def test_values_are_unique(self):
        values = [event.value for event in SecurityEvent]
        assert len(values) == len(set(values))
