"""Tests for rating saves and the ranked comparison report."""

import pytest


@pytest.fixture
def setup(client):
    def criterion(name, ctype):
        return client.post("/api/v1/criteria", json={"name": name, "type": ctype}).json()["id"]

    def prop(name):
        return client.post(
            "/api/v1/properties", json={"name": name, "address": f"{name} St"}
        ).json()["id"]

    ids = {
        "A": criterion("A", "must-have"),
        "B": criterion("B", "must-have"),
        "C": criterion("C", "nice-to-have"),
        "P": prop("P"),
        "Q": prop("Q"),
    }
    return ids


def _rate(client, property_id, ratings):
    return client.put(
        f"/api/v1/properties/{property_id}/ratings",
        json={"ratings": [{"criterion_id": cid, "score": s} for cid, s in ratings]},
    )


class TestRatings:
    def test_upsert_overwrites(self, client, setup):
        _rate(client, setup["P"], [(setup["A"], 1)])
        response = client.put(
            f"/api/v1/properties/{setup['P']}/ratings",
            json={"ratings": [{"criterion_id": setup["A"], "score": 3, "notes": "Garage"}]},
        )
        assert response.json()["status"] == "saved"

        ratings = client.get(f"/api/v1/properties/{setup['P']}/ratings").json()
        assert len(ratings) == 1
        assert ratings[0]["score"] == 3
        assert ratings[0]["label"] == "Meets"
        assert ratings[0]["notes"] == "Garage"

    def test_rejects_out_of_range_score(self, client, setup):
        response = _rate(client, setup["P"], [(setup["A"], 4)])
        assert response.status_code == 422
        assert client.get(f"/api/v1/properties/{setup['P']}/ratings").json() == []

    def test_partial_failure_keeps_earlier_saves(self, client, setup):
        response = _rate(
            client,
            setup["P"],
            [(setup["A"], 3), ("missing-criterion", 2), (setup["C"], 2)],
        )
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "partial"
        assert body["saved"] == [setup["A"], setup["C"]]
        assert [f["criterion_id"] for f in body["failed"]] == ["missing-criterion"]

        saved = client.get(f"/api/v1/properties/{setup['P']}/ratings").json()
        assert sorted(r["criterion_id"] for r in saved) == sorted([setup["A"], setup["C"]])

    def test_unknown_property(self, client, setup):
        assert _rate(client, "nope", [(setup["A"], 3)]).status_code == 404


class TestReports:
    def test_empty_message(self, client):
        body = client.get("/api/v1/reports").json()
        assert body["items"] == []
        assert body["message"].startswith("No properties")

    def test_no_ratings_message(self, client, setup):
        body = client.get("/api/v1/reports?view=all").json()
        assert body["message"].startswith("No ratings yet")

    def test_views(self, client, setup):
        _rate(client, setup["P"], [(setup["A"], 3), (setup["B"], 3), (setup["C"], 2)])
        _rate(client, setup["Q"], [(setup["A"], 3), (setup["B"], 2)])

        tier1 = client.get("/api/v1/reports?view=tier1").json()
        assert [i["property"]["name"] for i in tier1["items"]] == ["P"]
        assert tier1["message"] is None

        ranked = client.get("/api/v1/reports?view=all&sort_by=total").json()["items"]
        assert [i["property"]["name"] for i in ranked] == ["P", "Q"]
        assert ranked[0]["total_score"] == 11
        assert ranked[0]["meets_all_must_haves"] is True
        assert ranked[1]["must_have_score"] == 2.5
        assert ranked[1]["total_score"] == 7.5
        assert ranked[1]["meets_all_must_haves"] is False

        by_b = client.get(f"/api/v1/reports?view=all&sort_by={setup['B']}").json()["items"]
        assert [i["property"]["name"] for i in by_b] == ["P", "Q"]

    def test_archived_properties_excluded(self, client, setup):
        _rate(client, setup["P"], [(setup["A"], 3), (setup["B"], 3)])
        client.post(f"/api/v1/properties/{setup['P']}/archive")
        items = client.get("/api/v1/reports?view=all").json()["items"]
        assert [i["property"]["name"] for i in items] == ["Q"]

    def test_single_property_score(self, client, setup):
        _rate(client, setup["Q"], [(setup["A"], 3), (setup["B"], 2)])
        body = client.get(f"/api/v1/reports/{setup['Q']}").json()
        assert body["total_score"] == 7.5
        assert len(body["ratings"]) == 2
        assert client.get("/api/v1/reports/nope").status_code == 404

    def test_unknown_view_rejected(self, client):
        assert client.get("/api/v1/reports?view=tier2").status_code == 422
