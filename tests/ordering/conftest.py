import base64
import json
import time

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from ordering.auth.identity import Identity, TokenVerifier, reset_verifier, set_verifier
from ordering.catalog import reset_catalog, set_catalog
from ordering.catalog.fake_adapter import FakeCatalogGateway
from ordering.config import Settings, reset_settings, set_settings
from ordering.payment.gateway import reset_gateway, set_gateway
from ordering.payment.gateway.fake_adapter import FakePaymentGateway
from protean import current_domain
from protean.integrations.pytest import DomainFixture

SHIPPING_ADDRESS = {
    "street": "123 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def settings():
    active = Settings(payment_return_url="https://shop.test/payment/return")
    set_settings(active)
    yield active
    reset_settings()


@pytest.fixture(autouse=True)
def catalog():
    fake = FakeCatalogGateway()
    set_catalog(fake)
    yield fake
    reset_catalog()


@pytest.fixture(autouse=True)
def payment_gateway():
    fake = FakePaymentGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture()
def customer():
    return Identity(subject_id="user-001", roles=frozenset({"ROLE_USER"}))


@pytest.fixture()
def other_customer():
    return Identity(subject_id="user-002", roles=frozenset({"ROLE_USER"}))


@pytest.fixture()
def admin():
    return Identity(subject_id="admin-001", roles=frozenset({"ROLE_ADMIN"}))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------
def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(signing_key):
    return (
        signing_key.public_key()
        .public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
        .decode()
    )


@pytest.fixture()
def verifier(public_key_pem):
    token_verifier = TokenVerifier(public_key_pem)
    set_verifier(token_verifier)
    yield token_verifier
    reset_verifier()


@pytest.fixture()
def issue_token(signing_key):
    """Return a function that signs the given claims as an RS256 token."""

    def _issue(claims=None, header=None, key=None, **overrides):
        body = {"userId": "user-001", "userType": "user", "exp": int(time.time()) + 3600}
        body.update(claims or {})
        body.update(overrides)
        head = header or {"alg": "RS256", "typ": "JWT"}

        signing_input = f"{_b64url(json.dumps(head).encode())}.{_b64url(json.dumps(body).encode())}"
        signature = (key or signing_key).sign(signing_input.encode(), padding.PKCS1v15(), hashes.SHA256())
        return f"{signing_input}.{_b64url(signature)}"

    return _issue


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)
