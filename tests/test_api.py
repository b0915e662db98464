"""Integration tests for API endpoints"""

from datetime import date

from fastapi.testclient import TestClient

from app.analytics.aggregation import AnalyticsAggregator
from app.analytics.dataset import TaxObligation
from app.analytics.router import get_analytics_aggregator
from app.main import app
from tests.conftest import InMemorySource, make_expense, make_invoice


BASE = "/api/analytics/org_test"
YEAR = {"start_date": "2024-01-01", "end_date": "2024-12-31"}


def test_health_endpoint(client: TestClient):
    """Test service health check endpoint"""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_revenue_forecast_envelope(client: TestClient):
    """Test GET revenue forecast returns the standard envelope"""
    response = client.get(f"{BASE}/revenue/forecast", params={**YEAR, "periods": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]["forecast"]) == 3
    assert body["metadata"]["organization_id"] == "org_test"
    assert body["metadata"]["date_range"] == {"start": "2024-01-01", "end": "2024-12-31"}
    assert body["metadata"]["cached"] is False
    assert body["metadata"]["processing_time_ms"] >= 0


def test_unknown_group_by_is_invalid_parameter(client: TestClient):
    """Test unsupported grouping maps to 400 invalid_parameter"""
    response = client.get(f"{BASE}/revenue/trends", params={**YEAR, "group_by": "fortnight"})

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "invalid_parameter"


def test_start_after_end_is_invalid_date_range(client: TestClient):
    """Test inverted date range maps to 400 invalid_date_range"""
    response = client.get(
        f"{BASE}/summary", params={"start_date": "2024-12-31", "end_date": "2024-01-01"}
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "invalid_date_range"


def test_missing_dates_fail_validation(client: TestClient):
    response = client.get(f"{BASE}/summary")

    assert response.status_code == 422


def test_forecast_horizon_above_maximum(client: TestClient):
    response = client.get(f"{BASE}/revenue/forecast", params={**YEAR, "periods": 30})

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "invalid_parameter"


def test_forecast_with_too_little_history(client: TestClient):
    """Test two months of ledger data map to 422 insufficient_data"""
    response = client.get(
        f"{BASE}/revenue/forecast", params={"start_date": "2024-01-01", "end_date": "2024-02-29"}
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error_code"] == "insufficient_data"
    assert "at least 5 required" in detail["message"]


def test_minimum_data_is_checked_before_forecasting():
    """Test three invoices over a quarter are rejected at the API"""
    invoices = [make_invoice(f"i{m}", "c1", date(2024, m, 5), 100.0 * m) for m in (1, 2, 3)]
    expenses = [make_expense(f"e{d}", 10.0, date(2024, 1, 1 + d)) for d in range(12)]
    source = InMemorySource(invoices=invoices, expenses=expenses)
    app.dependency_overrides[get_analytics_aggregator] = lambda: AnalyticsAggregator(source)
    try:
        response = TestClient(app).get(
            f"{BASE}/revenue/forecast", params={"start_date": "2024-01-01", "end_date": "2024-03-31"}
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error_code"] == "insufficient_data"
    assert "Only 3 invoices found" in detail["message"]


def test_short_range_is_rejected_for_ratios(client: TestClient):
    response = client.get(f"{BASE}/ratios", params={"start_date": "2024-01-01", "end_date": "2024-01-10"})

    assert response.status_code == 422
    assert "at least 30 required" in response.json()["detail"]["message"]


def test_short_range_still_allowed_for_summary(client: TestClient):
    response = client.get(f"{BASE}/summary", params={"start_date": "2024-01-01", "end_date": "2024-01-10"})

    assert response.status_code == 200


def test_tax_endpoint(client: TestClient):
    response = client.get(f"{BASE}/tax", params=YEAR)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "2024-01-01 to 2024-12-31"
    assert data["compliance_score"] == 0.0
    schedule = data["optimization"]["cash_flow"]["payment_schedule"]
    assert schedule[-1] == {"due_date": "2025-03-31", "amount": 0.0, "tax_type": "income_tax"}


def test_tax_obligations_are_judged_as_of_a_day():
    obligations = [
        TaxObligation(id="t1", tax_type="vat", amount=1200.0, due_date=date(2024, 3, 31), penalty_amount=60.0),
        TaxObligation(id="t2", tax_type="paye", amount=400.0, due_date=date(2024, 4, 15)),
    ]
    source = InMemorySource(tax_obligations=obligations)
    app.dependency_overrides[get_analytics_aggregator] = lambda: AnalyticsAggregator(source)
    try:
        response = TestClient(app).get(f"{BASE}/tax", params={**YEAR, "as_of": "2024-04-01"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    obligation_status = response.json()["data"]["obligations"]
    assert obligation_status["overdue_count"] == 1
    assert obligation_status["penalties"] == 60.0
    assert [o["id"] for o in obligation_status["upcoming"]] == ["t2"]


def test_expense_endpoints(client: TestClient):
    trends = client.get(f"{BASE}/expenses/trends", params=YEAR)
    anomalies = client.get(f"{BASE}/expenses/anomalies", params={**YEAR, "sensitivity": "high"})
    patterns = client.get(f"{BASE}/expenses/patterns", params=YEAR)

    assert trends.status_code == 200
    assert anomalies.status_code == 200
    assert anomalies.json()["data"]["summary"]["high_severity_count"] >= 1
    assert patterns.status_code == 200


def test_unknown_sensitivity(client: TestClient):
    response = client.get(f"{BASE}/expenses/anomalies", params={**YEAR, "sensitivity": "paranoid"})

    assert response.status_code == 400


def test_profitability_endpoints(client: TestClient):
    customers = client.get(
        f"{BASE}/profitability/customers", params={**YEAR, "include_cost_allocation": "false"}
    )
    trends = client.get(f"{BASE}/profitability/trends", params={**YEAR, "group_by": "quarter"})

    assert customers.status_code == 200
    assert customers.json()["data"]["customers"][0]["customer_id"] == "cust_a"
    assert trends.status_code == 200
    assert len(trends.json()["data"]["trends"]) == 4


def test_ratio_endpoints(client: TestClient):
    ratios = client.get(f"{BASE}/ratios", params={**YEAR, "include_benchmarking": "true"})
    trends = client.get(f"{BASE}/ratios/trends", params=YEAR)
    benchmarks = client.get(f"{BASE}/ratios/benchmarks", params={**YEAR, "sector": "retail"})
    unknown = client.get(f"{BASE}/ratios/benchmarks", params={**YEAR, "sector": "mining"})

    assert ratios.status_code == 200
    assert ratios.json()["data"]["industry_comparison"] is not None
    assert trends.status_code == 200
    assert benchmarks.json()["data"]["sector"] == "retail"
    assert unknown.status_code == 400


def test_health_score_compares_previous_period(client: TestClient):
    response = client.get(f"{BASE}/health", params={"start_date": "2024-07-01", "end_date": "2024-12-31"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert 0 <= data["overall_score"] <= 100
    assert data["trends"]["previous_score"] is not None


def test_summary_and_sufficiency(client: TestClient):
    summary = client.get(f"{BASE}/summary", params=YEAR)
    sufficiency = client.get(
        f"{BASE}/sufficiency", params={"start_date": "2024-01-01", "end_date": "2024-01-10"}
    )

    assert summary.status_code == 200
    assert summary.json()["data"]["revenue"] > 0
    assert sufficiency.status_code == 200
    assert sufficiency.json()["data"]["is_sufficient"] is False


def test_data_source_failure_is_internal_error():
    """Test unexpected failures are sanitized by the global handler"""

    class BrokenSource(InMemorySource):
        async def fetch_invoices(self, organization_id, date_range):
            raise RuntimeError("connection reset by peer")

    app.dependency_overrides[get_analytics_aggregator] = lambda: AnalyticsAggregator(BrokenSource())
    try:
        response = TestClient(app, raise_server_exceptions=False).get(f"{BASE}/summary", params=YEAR)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "internal_error"
    assert "connection reset" not in body["message"]


def test_invoices_outside_range_are_ignored():
    source = InMemorySource(invoices=[make_invoice("i1", "c1", date(2023, 6, 1), 999.0)])
    app.dependency_overrides[get_analytics_aggregator] = lambda: AnalyticsAggregator(source)
    try:
        response = TestClient(app).get(f"{BASE}/summary", params=YEAR)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["data"]["revenue"] == 0
