import csv
import io
from decimal import Decimal

BASE = "/api/commissions/tenants/1"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_calculate_policy(client, make_grid, make_tier, make_agent, make_policy):
    make_grid(category="motor", rate="8")
    agent = make_agent(tier=make_tier(base_percentage="70"))
    policy = make_policy(premium="50000", source_type="agent", agent=agent)

    response = client.post(f"{BASE}/policies/{policy.id}/calculate")

    assert response.status_code == 200
    body = response.json()
    assert body["policy_id"] == policy.id
    assert Decimal(body["insurer_commission"]) == Decimal("4000")
    assert Decimal(body["agent_commission"]) == Decimal("2800")
    assert Decimal(body["broker_share"]) == Decimal("1200")
    assert body["calc_date"] is not None


def test_calculate_without_grid_returns_reason(client, make_policy):
    policy = make_policy()

    response = client.post(f"{BASE}/policies/{policy.id}/calculate")

    assert response.status_code == 422
    assert response.json()["reason"] == "no_applicable_grid"


def test_calculate_unknown_policy(client):
    response = client.post(f"{BASE}/policies/999/calculate")

    assert response.status_code == 404
    assert response.json()["reason"] == "policy_not_found"


def test_calculate_with_missing_party(client, make_grid, make_policy):
    make_grid(category="motor")
    policy = make_policy(source_type="misp")

    response = client.post(f"{BASE}/policies/{policy.id}/calculate")

    assert response.status_code == 404
    assert response.json()["reason"] == "party_not_found"


def test_preview(client, make_grid, make_policy):
    make_grid(category="motor", rate="10")
    policy = make_policy(premium="100000")

    response = client.get(f"{BASE}/policies/{policy.id}/preview")

    assert response.status_code == 200
    assert Decimal(response.json()["insurer_commission"]) == Decimal("10000")
    assert response.json()["calc_date"] is None
    assert client.get(f"{BASE}/distributions/{policy.id}").status_code == 404


def test_resync_reports_failures(client, make_grid, make_policy):
    make_grid(category="motor", rate="10")
    ok = make_policy()
    bad = make_policy(category="Life")

    response = client.post(f"{BASE}/resync")

    assert response.status_code == 200
    body = response.json()
    assert [d["policy_id"] for d in body["succeeded"]] == [ok.id]
    assert body["failed"] == [{
        "policy_id": bad.id,
        "policy_number": bad.policy_number,
        "reason": "no_applicable_grid",
        "message": body["failed"][0]["message"],
    }]
    assert body["cancelled"] is False


def test_async_resync_queues_task(client, monkeypatch):
    from app.tasks import async_tasks

    class FakeResult:
        id = "task-123"

    queued = []
    monkeypatch.setattr(
        async_tasks.resync_tenant_commissions, "delay", lambda tenant_id: queued.append(tenant_id) or FakeResult()
    )

    response = client.post(f"{BASE}/resync/async")

    assert response.status_code == 202
    assert response.json()["task_id"] == "task-123"
    assert queued == [1]


def test_list_and_get_distributions(client, make_grid, make_policy):
    make_grid(category="motor", rate="10")
    make_grid(category="health", rate="20")
    motor = make_policy(premium="1000")
    make_policy(premium="500", category="Health")
    client.post(f"{BASE}/resync")

    listing = client.get(f"{BASE}/distributions").json()
    filtered = client.get(f"{BASE}/distributions", params={"product_type": "Motor"}).json()
    single = client.get(f"{BASE}/distributions/{motor.id}")

    assert listing["totals"]["total_policies"] == 2
    assert Decimal(listing["totals"]["total_insurer_commission"]) == Decimal("200")
    assert [d["policy_id"] for d in filtered["data"]] == [motor.id]
    assert single.status_code == 200
    assert Decimal(single.json()["premium_amount"]) == Decimal("1000")


def test_export_csv(client, make_grid, make_policy):
    make_grid(category="motor", rate="10")
    policy = make_policy(premium="1000", customer_name="Meera Iyer")
    client.post(f"{BASE}/policies/{policy.id}/calculate")

    response = client.get(f"{BASE}/distributions/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 1
    assert rows[0]["Policy Number"] == policy.policy_number
    assert rows[0]["Customer Name"] == "Meera Iyer"
    assert rows[0]["Insurer Commission"] == "100.00"
    assert rows[0]["Broker Share"] == "100.00"
    assert rows[0]["Override Used"] == "No"


def test_statement_pdf(client, make_grid, make_policy):
    make_grid(category="motor", rate="10")
    policy = make_policy(premium="1000")
    client.post(f"{BASE}/policies/{policy.id}/calculate")

    response = client.get(f"{BASE}/distributions/statement")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_tiers(client):
    created = client.post(f"{BASE}/tiers", json={"name": "Gold", "base_percentage": "70"})
    duplicate = client.post(f"{BASE}/tiers", json={"name": "Gold", "base_percentage": "75"})
    out_of_range = client.post(f"{BASE}/tiers", json={"name": "Platinum", "base_percentage": "150"})
    listing = client.get(f"{BASE}/tiers")

    assert created.status_code == 201
    assert created.json()["tenant_id"] == 1
    assert duplicate.status_code == 400
    assert out_of_range.status_code == 422
    assert [t["name"] for t in listing.json()] == ["Gold"]
