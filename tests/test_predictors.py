"""
Tests for relevance predictors.
"""

from __future__ import annotations

import json

import httpx
import pytest

from notify_intel.errors import PredictionError
from notify_intel.models import ContextSnapshot, SystemContext, WorkflowContext
from notify_intel.predictors import (
    AdaptivePredictor,
    ContextScorePredictor,
    HttpRelevancePredictor,
    IntrinsicRelevancePredictor,
    PassThroughPredictor,
    RelevancePredictor,
    clamp_score,
    create_predictor_from_settings,
)
from notify_intel.scoring import ContextScorer
from tests.conftest import BUSINESS_HOURS, make_context, make_notification


class TestSimplePredictors:
    def test_pass_through(self):
        predictor = PassThroughPredictor()

        assert predictor.predict(make_notification(), ContextSnapshot()) == 1.0
        assert isinstance(predictor, RelevancePredictor)
        assert not isinstance(predictor, AdaptivePredictor)

    def test_context_score_predictor_delegates(self, clock):
        scorer = ContextScorer(clock=clock)
        predictor = ContextScorePredictor(scorer)
        notification = make_notification()
        context = make_context(time=BUSINESS_HOURS, last_active_minutes=10)

        assert predictor.predict(notification, context) == scorer.score(notification, context).relevance


class TestIntrinsicRelevancePredictor:
    """Tests for the static priority/category/type predictor."""

    def test_critical_workflow_error(self):
        notification = make_notification(priority="critical", category="workflow", type="error")

        score = IntrinsicRelevancePredictor().predict(notification, ContextSnapshot())

        # 0.4 (priority) + 0.3 (workflow) + 0.2 (error)
        assert score == pytest.approx(0.9)

    def test_least_relevant_combination(self):
        notification = make_notification(priority="low", category="user", type="info")

        score = IntrinsicRelevancePredictor().predict(notification, ContextSnapshot())

        # 0.1 + 0.18 + 0.12
        assert score == pytest.approx(0.4)

    def test_context_match_bonus(self):
        """A workflow context matching workflow metadata adds 0.05."""
        notification = make_notification(priority="critical", workflow_id="wf-1")
        context = ContextSnapshot(workflow=WorkflowContext(workflow_id="wf-1"))

        score = IntrinsicRelevancePredictor().predict(notification, context)

        assert score == pytest.approx(0.95)

    def test_clamped_to_one(self):
        notification = make_notification(
            priority="critical", category="workflow", type="error", workflow_id="wf"
        )
        context = ContextSnapshot(
            workflow=WorkflowContext(workflow_id="wf"),
            system=SystemContext(),
        )

        assert IntrinsicRelevancePredictor().predict(notification, context) <= 1.0


class TestClampScore:
    def test_clamps_range(self):
        assert clamp_score(1.7) == 1.0
        assert clamp_score(-0.2) == 0.0
        assert clamp_score(1) == 1.0

    @pytest.mark.parametrize("value", ["0.5", None, True, float("nan"), float("inf")])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(PredictionError):
            clamp_score(value)


def _predictor(handler) -> HttpRelevancePredictor:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpRelevancePredictor("http://model.test/predict", client=client)


class TestHttpRelevancePredictor:
    """Tests for the remote predictor using httpx.MockTransport."""

    def test_posts_notification_and_context(self):
        """The request body carries the notification and a context summary."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"score": 0.75})

        context = make_context(role="admin", time=BUSINESS_HOURS)
        score = _predictor(handler).predict(make_notification("n-9"), context)

        assert score == 0.75
        assert seen["url"] == "http://model.test/predict"
        assert seen["body"]["notification"]["id"] == "n-9"
        assert seen["body"]["context"]["userSession"]["role"] == "admin"
        assert seen["body"]["context"]["time"]["isBusinessHours"] is True

    def test_score_clamped(self):
        predictor = _predictor(lambda request: httpx.Response(200, json={"score": 3.2}))

        assert predictor.predict(make_notification(), ContextSnapshot()) == 1.0

    def test_http_error_status(self):
        predictor = _predictor(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(PredictionError, match="request failed"):
            predictor.predict(make_notification(), ContextSnapshot())

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PredictionError):
            _predictor(handler).predict(make_notification(), ContextSnapshot())

    def test_invalid_json(self):
        predictor = _predictor(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(PredictionError, match="invalid JSON"):
            predictor.predict(make_notification(), ContextSnapshot())

    def test_missing_score(self):
        predictor = _predictor(lambda request: httpx.Response(200, json={"relevance": 0.4}))

        with pytest.raises(PredictionError, match="missing 'score'"):
            predictor.predict(make_notification(), ContextSnapshot())

    def test_injected_client_not_closed(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"score": 1})))

        with HttpRelevancePredictor("http://model.test", client=client):
            pass

        assert client.is_closed is False


class TestPredictorFromSettings:
    def test_none_without_url(self, monkeypatch):
        monkeypatch.delenv("NOTIFY_PREDICTOR_URL", raising=False)

        assert create_predictor_from_settings() is None

    def test_http_predictor_with_url(self, monkeypatch):
        monkeypatch.setenv("NOTIFY_PREDICTOR_URL", "http://model.test/predict")
        monkeypatch.setenv("NOTIFY_PREDICTOR_TIMEOUT_SECONDS", "0.5")

        predictor = create_predictor_from_settings()

        assert isinstance(predictor, HttpRelevancePredictor)
        assert predictor.url == "http://model.test/predict"
        predictor.close()
