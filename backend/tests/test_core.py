import pytest

from makao.core.env_validation import validate_environment
from makao.core.permissions import Capability, has_capability, parse_role
from makao.models.enums import Role


def test_capabilities_by_role():
    assert has_capability(Role.TENANT, Capability.SUBMIT_PAYMENTS)
    assert not has_capability(Role.TENANT, Capability.VERIFY_PAYMENTS)
    assert has_capability(Role.LANDLORD, Capability.ALLOCATE_UNITS)
    assert not has_capability(Role.LANDLORD, Capability.CHANGE_ROLES)
    assert all(has_capability(Role.ADMIN, c) for c in Capability if c not in (
        Capability.SUBMIT_PAYMENTS, Capability.SUBMIT_MAINTENANCE,
    ))


@pytest.mark.parametrize(
    "label,role",
    [
        ("tenant", Role.TENANT),
        (" Landlord ", Role.LANDLORD),
        ("property_manager", Role.LANDLORD),
        ("admin", Role.ADMIN),
        ("root", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_role(label, role):
    assert parse_role(label) is role


def test_validation_passes_in_debug():
    settings = validate_environment()
    assert settings.debug is True


def test_non_postgres_database_refused_outside_debug(monkeypatch):
    monkeypatch.setenv("DEBUG", "false")
    with pytest.raises(SystemExit) as exc:
        validate_environment()
    assert exc.value.code == 1


def test_sms_without_credentials_refused(monkeypatch):
    monkeypatch.setenv("SMS_ENABLED", "true")
    with pytest.raises(SystemExit):
        validate_environment()
