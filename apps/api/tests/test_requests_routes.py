"""Tests for request intake, hash-match validation and tenant isolation."""

from erasure_api.models import CascadePolicy, LegacyCascadePolicy

from conftest import OTHER_API_KEY


class TestIntake:
    def test_subject_hash_lowercased(self, client, auth_headers):
        response = client.post("/v1/requests", json={"subjectHash": "AB" * 32, "requestRef": "T-1"}, headers=auth_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["subjectHash"] == "ab" * 32
        assert body["status"] == "RECEIVED"
        assert body["system"] == "drop"

    def test_raw_identifier_rejected(self, client, auth_headers):
        response = client.post("/v1/requests", json={"subjectHash": "alice@example.com"}, headers=auth_headers)
        assert response.status_code == 422

    def test_missing_api_key(self, client, org):
        assert client.post("/v1/requests", json={"subjectHash": "a" * 64}).status_code == 401

    def test_invalid_api_key(self, client, api_key):
        response = client.get("/v1/requests", headers={"x-api-key": "not-a-real-key"})
        assert response.status_code == 401

    def test_list_scoped_to_org(self, client, auth_headers, other_org):
        client.post("/v1/requests", json={"subjectHash": "a" * 64}, headers=auth_headers)

        mine = client.get("/v1/requests", headers=auth_headers).json()["requests"]
        theirs = client.get("/v1/requests", headers={"x-api-key": OTHER_API_KEY}).json()["requests"]

        assert len(mine) == 1
        assert theirs == []

    def test_other_org_cannot_dispatch(self, client, auth_headers, other_org):
        request_id = client.post("/v1/requests", json={"subjectHash": "a" * 64}, headers=auth_headers).json()["id"]

        response = client.post(
            f"/v1/requests/{request_id}/dispatch-cascade", headers={"x-api-key": OTHER_API_KEY}
        )
        assert response.status_code == 404


class TestHashMatch:
    def test_nothing_configured(self, client, auth_headers):
        body = client.post("/v1/hash-match/validate", json={"subjectHash": "f" * 64}, headers=auth_headers).json()

        assert body["matchedTargets"] == {"connectors": 0, "customerApis": 0, "partners": 0}
        assert body["cascadeCandidates"] == []
        assert len(body["notes"]) == 2
        assert body["dryRun"] is True

    def test_dry_run_flag_echoed(self, client, auth_headers):
        body = client.post(
            "/v1/hash-match/validate",
            json={"subjectHash": "f" * 64, "dryRun": False},
            headers=auth_headers,
        ).json()
        assert body["dryRun"] is False

    def test_candidates_from_both_generations(self, client, db, org, partner, connector, auth_headers):
        db.add(LegacyCascadePolicy(org_id=org.id, partner_id=partner.id, connector_id=connector.id, mode="DELETE"))
        db.add(
            CascadePolicy(
                org_id=org.id,
                partner_id=partner.id,
                target_type="customer_api",
                target_id="A1",
                mode="SUPPRESS",
            )
        )
        db.commit()

        body = client.post("/v1/hash-match/validate", json={"subjectHash": "f" * 64}, headers=auth_headers).json()

        assert body["matchedTargets"]["connectors"] == 1
        assert body["matchedTargets"]["partners"] == 1
        assert [(c["targetType"], c["targetId"], c["mode"]) for c in body["cascadeCandidates"]] == [
            ("connector", connector.id, "DELETE"),
            ("customer_api", "A1", "SUPPRESS"),
        ]
        assert all(c["partnerName"] == "Ad Network" for c in body["cascadeCandidates"])
        assert body["notes"] == []
