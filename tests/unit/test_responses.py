"""Tests for response classification (appservice_api.runtime.responses)."""

from __future__ import annotations

from appservice_api.runtime.responses import plan_response
from appservice_api.specs.descriptors import HandlerShape, ReturnShape


class TestPlanResponse:
    def test_no_args_collection(self) -> None:
        plan = plan_response(HandlerShape.NO_ARGS, ReturnShape.COLLECTION, "get_all_async")
        assert plan.status_code == 200
        assert not plan.empty_body
        assert plan.error_statuses == (401, 500)

    def test_id_only_value_adds_not_found(self) -> None:
        plan = plan_response(HandlerShape.ID_ONLY, ReturnShape.OPTIONAL, "get_async")
        assert plan.status_code == 200
        assert plan.not_found_on_none
        assert 404 in plan.error_statuses

    def test_id_only_void_delete_is_no_content(self) -> None:
        plan = plan_response(HandlerShape.ID_ONLY, ReturnShape.NONE, "delete_async")
        assert plan.status_code == 204
        assert plan.empty_body
        assert not plan.not_found_on_none

    def test_delete_prefix_ignores_case(self) -> None:
        plan = plan_response(HandlerShape.ID_ONLY, ReturnShape.NONE, "DeleteAsync")
        assert plan.status_code == 204

    def test_id_only_void_remove_is_ok(self) -> None:
        # "remove" maps to the DELETE verb but only the delete prefix answers 204
        plan = plan_response(HandlerShape.ID_ONLY, ReturnShape.NONE, "remove_async")
        assert plan.status_code == 200
        assert plan.empty_body

    def test_id_only_void_other_name(self) -> None:
        plan = plan_response(HandlerShape.ID_ONLY, ReturnShape.NONE, "archive_async")
        assert plan.status_code == 200
        assert plan.empty_body

    def test_body_only_identifier_is_created(self) -> None:
        plan = plan_response(HandlerShape.BODY_ONLY, ReturnShape.IDENTIFIER, "create_async")
        assert plan.status_code == 201
        assert plan.created
        assert plan.reads_body
        assert plan.error_statuses[0] == 400

    def test_body_only_value(self) -> None:
        plan = plan_response(HandlerShape.BODY_ONLY, ReturnShape.VALUE, "calculate_async")
        assert plan.status_code == 200
        assert not plan.created

    def test_id_and_body_always_no_content(self) -> None:
        plan = plan_response(HandlerShape.ID_AND_BODY, ReturnShape.VALUE, "update_async")
        assert plan.status_code == 204
        assert plan.empty_body

    def test_permission_adds_forbidden(self) -> None:
        plan = plan_response(
            HandlerShape.ID_ONLY, ReturnShape.NONE, "delete_async", permission=True
        )
        assert plan.error_statuses == (401, 403, 500)

    def test_anonymous_route_has_no_unauthorized(self) -> None:
        plan = plan_response(
            HandlerShape.NO_ARGS, ReturnShape.NONE, "recalculate_async", authenticated=False
        )
        assert plan.error_statuses == (500,)
