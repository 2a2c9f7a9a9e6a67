import pytest
from starlette.requests import Request

from identity import DevIdentityProvider, HeaderIdentityProvider, IdentityProvider, build_identity_provider
from models import Role


def request_with(headers):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    })


def test_dev_provider_resolves_default_users():
    provider = DevIdentityProvider()

    user = provider.resolve(request_with({"X-User-Id": "admin-1"}))

    assert user.role == Role.ADMIN
    assert provider.resolve(request_with({"X-User-Id": "ghost"})) is None
    assert provider.resolve(request_with({})) is None


def test_header_provider_trusts_gateway_headers():
    provider = HeaderIdentityProvider()

    user = provider.resolve(request_with({
        "X-User-Id": "u-77",
        "X-User-Name": "Ada",
        "X-User-Role": "Faculty",
    }))

    assert user.id == "u-77"
    assert user.name == "Ada"
    assert user.role == Role.FACULTY


def test_header_provider_ignores_incomplete_or_unknown_roles():
    provider = HeaderIdentityProvider()

    assert provider.resolve(request_with({"X-User-Id": "u-77"})) is None
    assert provider.resolve(request_with({"X-User-Id": "u-77", "X-User-Role": "janitor"})) is None


def test_build_identity_provider():
    assert isinstance(build_identity_provider("dev"), DevIdentityProvider)
    assert isinstance(build_identity_provider("header"), HeaderIdentityProvider)
    with pytest.raises(ValueError):
        build_identity_provider("ldap")


def test_identity_provider_is_abstract():
    with pytest.raises(TypeError):
        IdentityProvider()
