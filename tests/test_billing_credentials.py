"""Tests de la resolución de credenciales de FacturaLive por gimnasio."""
from gym_manager.domain.models.invoice import GymBillingConfig
from gym_manager.domain.services.billing_credentials import (
    BillingDefaults,
    format_number,
    missing_credentials,
    normalize_environment,
    parse_optional_number,
    resolve_credentials,
)

FULL_GYM = {
    "invoice_user_id": "10",
    "invoice_company_id": "20",
    "invoice_branch_code": "1",
    "invoice_branch_id": "2",
    "invoice_password": "secreto",
}


class TestResolveCredentials:
    """Cadena gimnasio -> valores por defecto del proceso"""

    def test_missing_password_is_reported_alone(self):
        gym = GymBillingConfig(**{**FULL_GYM, "invoice_password": None})

        credentials = resolve_credentials(gym, BillingDefaults())

        assert missing_credentials(credentials) == ["password"]

    def test_gym_value_wins_over_default(self):
        gym = GymBillingConfig(**FULL_GYM)

        credentials = resolve_credentials(gym, BillingDefaults(user_id="99"))

        assert credentials.user_id == "10"

    def test_blank_gym_value_falls_back_to_default(self):
        gym = GymBillingConfig(**{**FULL_GYM, "invoice_user_id": "   "})

        credentials = resolve_credentials(gym, BillingDefaults(user_id="99"))

        assert credentials.user_id == "99"

    def test_numeric_fields_require_valid_numbers(self):
        gym = GymBillingConfig(invoice_typecfe="101", invoice_cotizacion="abc")

        credentials = resolve_credentials(gym, BillingDefaults(cotizacion=40.5))

        assert credentials.typecfe == 101
        assert credentials.cotizacion == 40.5

    def test_missing_gym_uses_defaults_only(self):
        defaults = BillingDefaults(
            user_id="1", company_id="2", branch_code="3", branch_id="4", password="x", environment="PROD"
        )

        credentials = resolve_credentials(None, defaults)

        assert missing_credentials(credentials) == []
        # el ambiente por defecto se aplica recién al armar el payload
        assert credentials.environment is None

    def test_all_mandatory_fields_missing(self):
        credentials = resolve_credentials(None, BillingDefaults())

        assert missing_credentials(credentials) == ["userid", "empresaid", "codsucursal", "sucursal", "password"]

    def test_gym_environment_is_normalized(self):
        credentials = resolve_credentials(GymBillingConfig(invoice_environment=" produccion "), BillingDefaults())

        assert credentials.environment == "PROD"


class TestParsers:
    def test_normalize_environment(self):
        assert normalize_environment("PRODUCTION") == "PROD"
        assert normalize_environment("homo") == "TEST"
        assert normalize_environment("staging") is None
        assert normalize_environment(None) is None

    def test_parse_optional_number(self):
        assert parse_optional_number(" 3 ") == 3
        assert parse_optional_number("1.5") == 1.5
        assert parse_optional_number("") is None
        assert parse_optional_number(True) is None
        assert parse_optional_number(float("inf")) is None
        assert parse_optional_number("inf") is None
        assert parse_optional_number(" -Infinity ") is None
        assert parse_optional_number("nan") is None

    def test_format_number(self):
        assert format_number(1.0) == "1"
        assert format_number(1.5) == "1.5"
        assert format_number(111) == "111"
