"""
Budget ledger tests.

Tests cover:
  - Derived field math (variance, forecast_remaining) and cent rounding
  - budget_status classification
  - Create: required fields, defaults, validation, permissions
  - Partial update recomputes derived fields from merged values
  - Read-only and unknown fields are rejected on update
  - Delete requires the delete capability
"""
from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.models import db
from app.models.budget import BudgetItem
from app.services.budget_ledger import (
    BudgetItemPatch,
    budget_status,
    compute_derived,
)


def _item_payload(**overrides):
    payload = {
        "budget_item_id": "BUD-100",
        "category": "Software",
        "estimated_cost": 2000,
        "fiscal_period": "FY2024",
    }
    payload.update(overrides)
    return payload


# ═════════════════════════════════════════════════════════════════════════
# DERIVED FIELDS
# ═════════════════════════════════════════════════════════════════════════

class TestDerivedFields:
    def test_basic_math(self):
        derived = compute_derived(1000, 400, 10)
        assert derived.variance == Decimal("-600.00")
        assert derived.forecast_remaining == Decimal("700.00")

    def test_overspend_gives_positive_variance(self):
        derived = compute_derived(1000, 1250, 0)
        assert derived.variance == Decimal("250.00")
        assert derived.forecast_remaining == Decimal("-250.00")

    def test_rounds_to_cents(self):
        derived = compute_derived("100.10", "0", "12.5")
        # 100.10 * 1.125 = 112.6125
        assert derived.forecast_remaining == Decimal("112.61")

    def test_zero_contingency(self):
        assert compute_derived(500, 0, 0).forecast_remaining == Decimal("500.00")

    @pytest.mark.parametrize("estimated,actual,expected", [
        (1000, 1000, "on_track"),
        (1000, 1100, "on_track"),
        (1000, 1101, "over_budget"),
        (1000, 899, "under_budget"),
        (0, 0, "on_track"),
        (0, 5, "over_budget"),
    ])
    def test_budget_status(self, estimated, actual, expected):
        assert budget_status(estimated, actual) == expected


# ═════════════════════════════════════════════════════════════════════════
# PATCH VALIDATION
# ═════════════════════════════════════════════════════════════════════════

class TestBudgetItemPatch:
    def test_only_sent_fields_are_changed(self):
        patch = BudgetItemPatch.from_payload({"actual_cost": 12})
        assert patch.changed() == {"actual_cost": Decimal("12")}
        assert patch.touches_costs()

    def test_text_only_patch_does_not_touch_costs(self):
        patch = BudgetItemPatch.from_payload({"justification": "Licences"})
        assert not patch.touches_costs()

    @pytest.mark.parametrize("field", ["approval_status", "variance", "forecast_remaining", "approved_by"])
    def test_read_only_fields_rejected(self, field):
        with pytest.raises(ValidationError, match=field):
            BudgetItemPatch.from_payload({field: "x"})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            BudgetItemPatch.from_payload({"colour": "blue"})

    @pytest.mark.parametrize("payload", [
        {"estimated_cost": -1},
        {"actual_cost": "abc"},
        {"actual_cost": True},
        {"contingency_percentage": 101},
        {"contingency_percentage": -5},
        {"fiscal_period": "2024-Q1"},
        {"fiscal_period": "Q5-2024"},
        {"category": "   "},
        {"estimated_cost": "1e30"},
        {"actual_cost": "1000000000000"},
        {"estimated_cost": "10.005"},
        {"contingency_percentage": "12.345"},
    ])
    def test_invalid_values_rejected(self, payload):
        with pytest.raises(ValidationError):
            BudgetItemPatch.from_payload(payload)

    def test_numeric_strings_accepted(self):
        patch = BudgetItemPatch.from_payload({"estimated_cost": "1500.50"})
        assert patch.estimated_cost == Decimal("1500.50")

    def test_cost_bounds_accepted(self):
        patch = BudgetItemPatch.from_payload(
            {"estimated_cost": "999999999999.99", "actual_cost": "12.500"},
        )
        assert patch.estimated_cost == Decimal("999999999999.99")
        assert patch.actual_cost == Decimal("12.5")


# ═════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════

class TestCreateBudgetItem:
    def test_create_populates_derived_fields(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(actual_cost=500, contingency_percentage=20),
            headers=auth_headers(manager),
        )
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["approval_status"] == "pending"
        assert data["variance"] == -1500.0
        assert data["forecast_remaining"] == 1900.0
        assert data["budget_status"] == "under_budget"

    def test_defaults_for_actual_and_contingency(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(actual_cost=None),
            headers=auth_headers(manager),
        )
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["actual_cost"] == 0.0
        assert data["contingency_percentage"] == 10.0
        assert data["forecast_remaining"] == 2200.0

    def test_missing_required_fields(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json={"budget_item_id": "BUD-1", "category": "Labor"},
            headers=auth_headers(manager),
        )
        assert res.status_code == 400
        body = res.get_json()
        assert body == {"success": False, "error": "Required fields missing"}

    def test_negative_cost_rejected(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(estimated_cost=-10),
            headers=auth_headers(manager),
        )
        assert res.status_code == 400
        assert BudgetItem.query.count() == 0

    def test_oversized_cost_rejected(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(estimated_cost="1e30"),
            headers=auth_headers(manager),
        )
        assert res.status_code == 400
        assert "estimated_cost" in res.get_json()["error"]
        assert BudgetItem.query.count() == 0

    def test_client_cannot_set_approval_status(self, client, project, manager, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(approval_status="approved"),
            headers=auth_headers(manager),
        )
        assert res.status_code == 400
        assert BudgetItem.query.count() == 0

    def test_unknown_project(self, client, manager, auth_headers):
        res = client.post(
            "/api/projects/9999/budget-items",
            json=_item_payload(),
            headers=auth_headers(manager),
        )
        assert res.status_code == 404
        assert res.get_json()["error"] == "Project not found"

    def test_stakeholder_cannot_create(self, client, project, stakeholder, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(),
            headers=auth_headers(stakeholder),
        )
        assert res.status_code == 401

    def test_team_member_can_create(self, client, project, team_member, auth_headers):
        res = client.post(
            f"/api/projects/{project['id']}/budget-items",
            json=_item_payload(),
            headers=auth_headers(team_member),
        )
        assert res.status_code == 201

    def test_list_newest_first(self, client, project, manager, auth_headers):
        for code in ("BUD-A", "BUD-B"):
            client.post(
                f"/api/projects/{project['id']}/budget-items",
                json=_item_payload(budget_item_id=code),
                headers=auth_headers(manager),
            )
        res = client.get(
            f"/api/projects/{project['id']}/budget-items", headers=auth_headers(manager),
        )
        assert res.status_code == 200
        assert [i["budget_item_id"] for i in res.get_json()["data"]] == ["BUD-B", "BUD-A"]


# ═════════════════════════════════════════════════════════════════════════
# UPDATE / DELETE
# ═════════════════════════════════════════════════════════════════════════

class TestUpdateBudgetItem:
    def test_partial_update_uses_stored_values(self, client, budget_item, manager, auth_headers):
        res = client.patch(
            f"/api/budget-items/{budget_item['id']}",
            json={"actual_cost": 500},
            headers=auth_headers(manager),
        )
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["estimated_cost"] == 1000.0
        assert data["variance"] == -500.0
        assert data["forecast_remaining"] == 600.0

    def test_contingency_change_recomputes_forecast(self, client, budget_item, manager, auth_headers):
        res = client.patch(
            f"/api/budget-items/{budget_item['id']}",
            json={"contingency_percentage": 25},
            headers=auth_headers(manager),
        )
        assert res.status_code == 200
        assert res.get_json()["data"]["forecast_remaining"] == 1250.0

    def test_stored_row_matches_response(self, client, budget_item, manager, auth_headers):
        client.patch(
            f"/api/budget-items/{budget_item['id']}",
            json={"estimated_cost": 800, "actual_cost": 900},
            headers=auth_headers(manager),
        )
        db.session.expire_all()
        item = db.session.get(BudgetItem, budget_item["id"])
        assert item.variance == Decimal("100.00")
        assert item.forecast_remaining == Decimal("-20.00")

    def test_read_only_field_rejected(self, client, budget_item, manager, auth_headers):
        res = client.patch(
            f"/api/budget-items/{budget_item['id']}",
            json={"approval_status": "approved"},
            headers=auth_headers(manager),
        )
        assert res.status_code == 400
        db.session.expire_all()
        assert db.session.get(BudgetItem, budget_item["id"]).approval_status == "pending"

    def test_update_missing_item(self, client, manager, auth_headers):
        res = client.patch("/api/budget-items/424242", json={"actual_cost": 1}, headers=auth_headers(manager))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Budget item not found"


class TestDeleteBudgetItem:
    def test_team_member_cannot_delete(self, client, budget_item, team_member, auth_headers):
        res = client.delete(f"/api/budget-items/{budget_item['id']}", headers=auth_headers(team_member))
        assert res.status_code == 401
        assert BudgetItem.query.count() == 1

    def test_manager_deletes(self, client, budget_item, manager, auth_headers):
        res = client.delete(f"/api/budget-items/{budget_item['id']}", headers=auth_headers(manager))
        assert res.status_code == 200
        assert res.get_json() == {"success": True, "message": "Budget item deleted successfully"}
        assert BudgetItem.query.count() == 0

    def test_delete_missing_item(self, client, admin, auth_headers):
        res = client.delete("/api/budget-items/31337", headers=auth_headers(admin))
        assert res.status_code == 404
