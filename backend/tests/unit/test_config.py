import pytest
from pydantic import ValidationError

from slotbook.core.config import Settings
from slotbook.core.enums import SlotStepKind
from slotbook.domain.slot_generation import SlotStepPolicy


def test_defaults():
    config = Settings(_env_file=None)

    assert config.slot_step_policy == SlotStepKind.FIXED_GRID
    assert config.slot_grid_minutes == 15
    assert config.alternative_search_days == 7
    assert config.max_alternative_slots == 5


@pytest.mark.parametrize("raw", ["service_duration", "Service-Duration", " SERVICE_DURATION "])
def test_step_policy_is_normalized(raw):
    config = Settings(_env_file=None, slot_step_policy=raw)

    assert config.slot_step_policy == SlotStepKind.SERVICE_DURATION


def test_unknown_step_policy_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, slot_step_policy="hourly")


@pytest.mark.parametrize("field", ["slot_grid_minutes", "max_alternative_slots"])
def test_positive_fields(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_search_days_may_be_zero_but_not_negative():
    assert Settings(_env_file=None, alternative_search_days=0).alternative_search_days == 0

    with pytest.raises(ValidationError):
        Settings(_env_file=None, alternative_search_days=-1)


def test_environment_variables_use_prefix(monkeypatch):
    monkeypatch.setenv("SLOTBOOK_SLOT_GRID_MINUTES", "30")
    monkeypatch.setenv("SLOTBOOK_SLOT_STEP_POLICY", "fixed_grid")

    config = Settings(_env_file=None)

    assert config.slot_step() == SlotStepPolicy(SlotStepKind.FIXED_GRID, 30)
