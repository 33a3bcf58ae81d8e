"""
Local handler tests using mocks.

These tests validate handler logic without connecting to AWS or PostgreSQL.
Services are replaced with MagicMock through the lazy loaders; the end-to-end
cases point the shared store at the in-memory SQLite fixture instead.

Run with: pytest tests/unit/test_handlers_local.py -v
"""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from models.action import ActionResult
from models.flow import FlowRunResult, FlowStatus
from models.scoring import ScoreBatchResult
from models.trigger import TriggerEvaluation
from utils.error_handling import NotFoundError, StoreNotConfiguredError


def _post(path, body):
    return {
        "requestContext": {"http": {"method": "POST", "path": path}},
        "body": json.dumps(body),
    }


def _body(resp):
    return json.loads(resp["body"])


class TestComputeScoresHandler:
    def test_requires_a_target(self):
        from handlers import compute_scores

        resp = compute_scores.lambda_handler(_post("/scores/compute", {}), None)

        assert resp["statusCode"] == 400
        assert "contact_id or compute_all" in _body(resp)["error"]

    def test_returns_batch_results(self):
        from handlers import compute_scores

        service = MagicMock()
        service.compute_scores.return_value = ScoreBatchResult(processed=1, triggers_fired=2)
        with patch.object(compute_scores, "_get_automation_service", return_value=service):
            resp = compute_scores.lambda_handler(_post("/scores/compute", {"contact_id": "c-1"}), None)

        assert resp["statusCode"] == 200
        body = _body(resp)
        assert body["success"] is True
        assert body["results"]["triggers_fired"] == 2
        assert service.compute_scores.call_args[0][0].contact_id == "c-1"

    def test_scheduled_run_covers_every_contact(self):
        from handlers import compute_scores

        service = MagicMock()
        service.compute_scores.return_value = ScoreBatchResult(processed=10)
        with patch.object(compute_scores, "_get_automation_service", return_value=service):
            result = compute_scores.scheduled_handler({"source": "aws.events"}, None)

        assert result["processed"] == 10
        assert service.compute_scores.call_args[0][0].compute_all is True

    def test_invalid_json_is_a_bad_request(self):
        from handlers import compute_scores

        event = {"body": "{not json"}
        resp = compute_scores.lambda_handler(event, None)
        assert resp["statusCode"] == 400
        assert "Invalid JSON body" in _body(resp)["error"]

    def test_base64_body_is_decoded(self):
        from handlers import compute_scores

        service = MagicMock()
        service.compute_scores.return_value = ScoreBatchResult()
        event = {
            "body": base64.b64encode(json.dumps({"compute_all": True}).encode()).decode(),
            "isBase64Encoded": True,
        }
        with patch.object(compute_scores, "_get_automation_service", return_value=service):
            resp = compute_scores.lambda_handler(event, None)
        assert resp["statusCode"] == 200

    def test_unconfigured_store_is_503(self):
        from handlers import compute_scores

        with patch.object(
            compute_scores, "_get_automation_service", side_effect=StoreNotConfiguredError()
        ):
            resp = compute_scores.lambda_handler(_post("/scores/compute", {"compute_all": True}), None)
        assert resp["statusCode"] == 503


class TestEvaluateTriggersHandler:
    def test_missing_fields(self):
        from handlers import evaluate_triggers

        resp = evaluate_triggers.lambda_handler(_post("/triggers/evaluate", {"contact_id": "c-1"}), None)
        assert resp["statusCode"] == 400

    def test_unknown_contact_is_404(self):
        from handlers import evaluate_triggers

        evaluator = MagicMock()
        evaluator.evaluate.side_effect = NotFoundError("Contact not found")
        with patch.object(evaluate_triggers, "_get_trigger_evaluator", return_value=evaluator):
            resp = evaluate_triggers.lambda_handler(
                _post("/triggers/evaluate", {"contact_id": "x", "trigger_event": "manual"}), None
            )
        assert resp["statusCode"] == 404
        assert _body(resp)["error"] == "Contact not found"

    def test_returns_selected_actions(self):
        from handlers import evaluate_triggers

        evaluator = MagicMock()
        evaluator.evaluate.return_value = TriggerEvaluation(
            contact_id="c-1", trigger_event="manual", triggers_evaluated=4
        )
        with patch.object(evaluate_triggers, "_get_trigger_evaluator", return_value=evaluator):
            resp = evaluate_triggers.lambda_handler(
                _post(
                    "/triggers/evaluate",
                    {"contact_id": "c-1", "trigger_event": "manual", "event_data": {"a": 1}},
                ),
                None,
            )
        body = _body(resp)
        assert body["success"] is True
        assert body["triggers_evaluated"] == 4
        evaluator.evaluate.assert_called_once_with("c-1", "manual", {"a": 1})


class TestExecuteActionHandler:
    @pytest.mark.parametrize("missing", ["contact_id", "trigger_id", "action"])
    def test_required_fields(self, missing):
        from handlers import execute_action

        payload = {"contact_id": "c-1", "trigger_id": "t-1", "action": {"type": "create_task"}}
        payload.pop(missing)
        resp = execute_action.lambda_handler(_post("/actions/execute", payload), None)
        assert resp["statusCode"] == 400
        assert _body(resp)["error"] == f"{missing} is required"

    def test_failed_action_is_still_200(self):
        from handlers import execute_action

        executor = MagicMock()
        executor.execute.return_value = ActionResult(
            success=False, action_type="teleport", error="Unknown action type: teleport"
        )
        with patch.object(execute_action, "_get_action_executor", return_value=executor):
            resp = execute_action.lambda_handler(
                _post(
                    "/actions/execute",
                    {"contact_id": "c-1", "trigger_id": "t-1", "action": {"type": "teleport"}},
                ),
                None,
            )
        assert resp["statusCode"] == 200
        assert _body(resp)["success"] is False


class TestRunFlowHandler:
    def test_missing_flow_is_404(self):
        from handlers import run_flow

        runner = MagicMock()
        runner.run.side_effect = NotFoundError("Flow not found")
        with patch.object(run_flow, "_get_flow_runner", return_value=runner):
            resp = run_flow.lambda_handler(_post("/flows/run", {"contact_id": "c", "flow_id": "f"}), None)
        assert resp["statusCode"] == 404

    def test_returns_run_summary(self):
        from handlers import run_flow

        runner = MagicMock()
        runner.run.return_value = FlowRunResult(
            success=True, execution_id="e-1", status=FlowStatus.COMPLETED, nodes_executed=3
        )
        with patch.object(run_flow, "_get_flow_runner", return_value=runner):
            resp = run_flow.lambda_handler(
                _post("/flows/run", {"contact_id": "c", "flow_id": "f", "contact_flow_id": "cf"}),
                None,
            )
        body = _body(resp)
        assert body["status"] == "completed"
        assert body["nodes_executed"] == 3
        runner.run.assert_called_once_with("c", "f", "cf")


class TestContact360Handler:
    def test_reads_id_from_path_parameters(self):
        from handlers import contact_360

        service = MagicMock()
        service.get_contact_360.return_value.model_dump_json.return_value = '{"contact": {"id": "c-9"}}'
        with patch.object(contact_360, "_get_contact_service", return_value=service):
            resp = contact_360.lambda_handler({"pathParameters": {"id": "c-9"}}, None)
        assert resp["statusCode"] == 200
        service.get_contact_360.assert_called_once_with("c-9")

    def test_reads_id_from_raw_path(self):
        from handlers import contact_360

        service = MagicMock()
        service.get_contact_360.return_value.model_dump_json.return_value = "{}"
        event = {"requestContext": {"http": {"method": "GET", "path": "/contacts/c-7"}}}
        with patch.object(contact_360, "_get_contact_service", return_value=service):
            contact_360.lambda_handler(event, None)
        service.get_contact_360.assert_called_once_with("c-7")

    def test_missing_id(self):
        from handlers import contact_360

        resp = contact_360.lambda_handler({}, None)
        assert resp["statusCode"] == 400

    def test_unexpected_error_is_500(self):
        from handlers import contact_360

        service = MagicMock()
        service.get_contact_360.side_effect = RuntimeError("pool exhausted")
        with patch.object(contact_360, "_get_contact_service", return_value=service):
            resp = contact_360.lambda_handler({"pathParameters": {"id": "c-1"}}, None)
        assert resp["statusCode"] == 500


class TestEndToEnd:
    """Handlers wired to the real services over the SQLite store."""

    @pytest.fixture(autouse=True)
    def shared_store(self, store, monkeypatch):
        import services.store as store_module
        from handlers import contact_360, ingest_interaction, run_flow

        monkeypatch.setattr(store_module, "_store", store)
        monkeypatch.setattr(ingest_interaction, "_ingestion_service", None)
        monkeypatch.setattr(contact_360, "_contact_service", None)
        monkeypatch.setattr(run_flow, "_flow_runner", None)
        return store

    def test_ingest_then_fetch_contact_360(self):
        from handlers import main

        resp = main.lambda_handler(
            _post(
                "/interactions",
                {
                    "phone": "+15550100",
                    "channel": "voice",
                    "direction": "inbound",
                    "content": "Call about pricing",
                    "variables": [{"name": "budget", "value": "25k"}],
                },
            ),
            None,
        )
        assert resp["statusCode"] == 200
        ingested = _body(resp)
        assert ingested["is_new_contact"] is True
        assert ingested["correlation_id"]

        event = {
            "requestContext": {"http": {"method": "GET", "path": f"/contacts/{ingested['contact_id']}"}},
        }
        view = _body(main.lambda_handler(event, None))
        assert view["contact"]["phone"] == "+15550100"
        assert view["variables_by_name"]["budget"]["variable_value"] == "25k"
        assert view["timeline_summary"]["channel_breakdown"] == {"voice": 1}

    def test_ingest_validation_error(self):
        from handlers import main

        resp = main.lambda_handler(
            _post("/interactions", {"channel": "sms", "direction": "inbound", "content": "hi"}), None
        )
        assert resp["statusCode"] == 400
        assert "contact_id, phone, or email" in _body(resp)["error"]

    def test_run_flow_for_unknown_flow(self, make_contact):
        from handlers import main

        contact = make_contact()
        resp = main.lambda_handler(
            _post("/flows/run", {"contact_id": contact.id, "flow_id": "missing"}), None
        )
        assert resp["statusCode"] == 404
        assert _body(resp)["error"] == "Flow not found"
