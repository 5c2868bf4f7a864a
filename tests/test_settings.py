import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import config.settings as settings
from config.settings import Settings, get_settings
from workflow import create_order_wizard


def reset_settings():
    settings._settings = None  # type: ignore


def test_settings_loads_env(tmp_path, monkeypatch):
    for name in ("API_BASE_URL", "ORDER_STEPS", "MEASUREMENT_UNIT", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "API_BASE_URL=https://tailor.example/api",
                "ORDER_STEPS=customer_selection, product_selection ,review_and_payment",
                "MEASUREMENT_UNIT=CM",
                "REQUEST_TIMEOUT=12.5",
            ]
        )
    )
    reset_settings()
    loaded = get_settings(force_reload=True, env_file=env_file)
    assert loaded.api_base_url == "https://tailor.example/api"
    assert loaded.step_keys == ["customer_selection", "product_selection", "review_and_payment"]
    assert loaded.measurement_unit == "cm"
    assert loaded.request_timeout == 12.5


def test_settings_cached_until_reload(monkeypatch):
    reset_settings()
    monkeypatch.setenv("DEFAULT_URGENCY", "high")
    first = get_settings(force_reload=True)
    assert first.default_urgency == "high"
    assert get_settings() is first

    monkeypatch.setenv("DEFAULT_URGENCY", "low")
    assert get_settings().default_urgency == "high"
    assert get_settings(force_reload=True).default_urgency == "low"
    reset_settings()


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(measurement_unit="furlong")
    with pytest.raises(ValidationError):
        Settings(advance_percentage=150)


def test_wizard_follows_configured_steps():
    configured = Settings(order_steps="customer_selection,product_selection,schedule,review_and_payment",
                          measurement_unit="mm", default_urgency="urgent", sync_measurements_on_submit=False,
                          advance_percentage=30)
    wizard = create_order_wizard(
        configured,
        customer_service=object(),
        fabric_service=object(),
        measurement_service=object(),
        order_service=object(),
    )

    assert [s.key.value for s in wizard.steps] == [
        "customer_selection", "product_selection", "schedule", "review_and_payment",
    ]
    assert wizard.store.draft.measurement_unit == "mm"
    assert wizard.store.draft.urgency.value == "urgent"
    assert wizard.submitter.sync_measurements is False
    assert wizard.advance_percentage == 30


def test_bad_step_configuration_fails_fast():
    with pytest.raises(ValueError):
        create_order_wizard(
            Settings(order_steps="customer_selection,payment"),
            customer_service=object(),
            fabric_service=object(),
            measurement_service=object(),
            order_service=object(),
        )
