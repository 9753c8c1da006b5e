"""Status workflow loading, validation and lookups."""

import json

import pytest
from django.test import override_settings

from ..services.status_config import (
    ConfigurationError,
    StatusWorkflow,
    ValidationError,
    clear_status_workflow_cache,
    get_status_workflow,
    load_status_config,
    validate_status_config,
)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_status_workflow_cache()
    yield
    clear_status_workflow_cache()


def minimal_config():
    return {
        "version": "1.0",
        "defaults": {"quote": "pending"},
        "categories": {
            "quote": {
                "pending": {"label": "Pending", "allowed_transitions": ["sent"]},
                "sent": {"label": "Sent", "allowed_transitions": ["expired"],
                         "triggers_email": True, "email_template": "quote_sent"},
                "expired": {"label": "Expired", "allowed_transitions": [], "is_terminal": True},
            }
        },
    }


class TestShippedWorkflow:
    def test_bundled_config_is_valid(self):
        assert validate_status_config(load_status_config()) == []

    def test_terminal_statuses_have_no_exits(self):
        wf = get_status_workflow()
        for name in ("completed", "delivered", "cancelled", "rejected", "expired"):
            assert wf.is_terminal(name)
            assert wf.allowed_transitions(name) == ()

    def test_lookups(self):
        wf = get_status_workflow()
        assert wf.can_transition("pending", "calculated")
        assert wf.can_transition("approved", "paid")
        assert not wf.can_transition("pending", "shipped")
        assert not wf.can_transition("nonsense", "sent")
        assert wf.category_of("shipped") == "order"
        assert wf.counts_as_order("paid")
        assert not wf.counts_as_order("sent")
        assert wf.default_status("quote") == "pending"
        assert [s.name for s in wf.statuses_for("quote")][:2] == ["pending", "calculated"]

    def test_cached_until_cleared(self):
        first = get_status_workflow()
        assert get_status_workflow() is first
        clear_status_workflow_cache()
        assert get_status_workflow() is not first


class TestValidation:
    def test_minimal_config_passes(self):
        assert validate_status_config(minimal_config()) == []

    def test_missing_top_level_keys(self):
        errors = validate_status_config({"categories": {}})
        assert "Missing required top-level key: version" in errors
        assert "Missing required top-level key: defaults" in errors

    def test_unknown_target(self):
        cfg = minimal_config()
        cfg["categories"]["quote"]["pending"]["allowed_transitions"].append("teleported")
        assert any("unknown status teleported" in e for e in validate_status_config(cfg))

    def test_terminal_with_exit(self):
        cfg = minimal_config()
        cfg["categories"]["quote"]["expired"]["allowed_transitions"] = ["pending"]
        assert any("Terminal status expired" in e for e in validate_status_config(cfg))

    def test_email_without_template(self):
        cfg = minimal_config()
        del cfg["categories"]["quote"]["sent"]["email_template"]
        assert any("no email_template" in e for e in validate_status_config(cfg))

    def test_bad_default(self):
        cfg = minimal_config()
        cfg["defaults"]["quote"] = "expired_typo"
        assert any("Default status" in e for e in validate_status_config(cfg))

    def test_from_config_defaults(self):
        wf = StatusWorkflow.from_config(minimal_config())
        assert wf.get("sent").triggers_email
        assert wf.get("pending").category == "quote"


class TestLoading:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_status_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "wf.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_status_config(path)

    def test_settings_path_override(self, tmp_path):
        path = tmp_path / "wf.json"
        path.write_text(json.dumps(minimal_config()), encoding="utf-8")
        with override_settings(STATUS_WORKFLOW_PATH=str(path)):
            wf = get_status_workflow()
        assert set(wf.statuses) == {"pending", "sent", "expired"}

    def test_invalid_override_raises(self, tmp_path):
        cfg = minimal_config()
        cfg["categories"]["quote"]["expired"]["allowed_transitions"] = ["pending"]
        path = tmp_path / "wf.json"
        path.write_text(json.dumps(cfg), encoding="utf-8")
        with override_settings(STATUS_WORKFLOW_PATH=str(path)):
            with pytest.raises(ValidationError):
                get_status_workflow()
