"""
API tests for the import pipeline routes.

Routes run against a temp file store through the api_client fixture.
"""

from tests.factories import MappingFactory, PayloadFactory


def preview_body(data, **extra) -> dict:
    return {
        "data": data,
        "vendorCode": "acme",
        "mapping": MappingFactory.create().to_json_dict(),
        **extra,
    }


def stage(api_client, data, **extra) -> dict:
    response = api_client.post("/api/imports/preview", json=preview_body(data, **extra))
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:
    def test_health(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"]["backend"] == "file"

    def test_root(self, api_client):
        assert api_client.get("/").json()["endpoints"]["imports"] == "/api/imports"


class TestAnalyzeEndpoints:
    """POST /api/imports/analyze and /analyze/file"""

    def test_analyze(self, api_client):
        response = api_client.post(
            "/api/imports/analyze",
            json={"data": [{"SKU": "A-1", "Price": 10}], "vendorCode": "acme"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["shape"] == "array"
        assert body["totalRows"] == 1
        assert body["suggestions"]["skuColumn"] == "SKU"
        assert body["suggestions"]["priceColumn"] == "Price"

    def test_analyze_bad_shape(self, api_client):
        response = api_client.post("/api/imports/analyze", json={"data": "nope"})

        assert response.status_code == 400
        assert response.json()["errors"] == ["unrecognized JSON structure"]

    def test_analyze_file(self, api_client):
        response = api_client.post(
            "/api/imports/analyze/file",
            files={"file": ("acme.csv", b"SKU,Name\nA-1,Widget\n", "text/csv")},
            data={"vendor_code": "acme"},
        )

        assert response.status_code == 200
        assert response.json()["data"] == [{"SKU": "A-1", "Name": "Widget"}]

    def test_analyze_file_unsupported(self, api_client):
        response = api_client.post(
            "/api/imports/analyze/file",
            files={"file": ("acme.pdf", b"%PDF", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestPreviewCommitEndpoints:
    """POST /api/imports/preview, /commit, /commit/direct"""

    def test_preview_camel_case(self, api_client):
        body = stage(api_client, {"A-1": PayloadFactory.row()})

        assert body["status"] == "staged"
        assert body["preview"]["summary"]["newProducts"] == 1
        assert body["preview"]["adds"][0]["incoming"]["productId"] == "acme:A-1"

    def test_preview_invalid_mapping(self, api_client):
        response = api_client.post(
            "/api/imports/preview",
            json={"data": {"A": {}}, "vendorCode": "acme", "mapping": {"vendorCode": "acme"}},
        )

        assert response.status_code == 400
        assert "SKU mapping is required" in response.json()["errors"]

    def test_preview_request_validation(self, api_client):
        response = api_client.post("/api/imports/preview", json={"data": {}})
        assert response.status_code == 422

    def test_commit_then_conflict(self, api_client):
        preview_id = stage(api_client, {"A-1": PayloadFactory.row()})["previewId"]

        first = api_client.post(
            "/api/imports/commit",
            json={"previewId": preview_id, "importedBy": "ops"},
        )
        second = api_client.post(
            "/api/imports/commit",
            json={"previewId": preview_id, "importedBy": "ops"},
        )

        assert first.status_code == 200
        assert first.json()["summary"]["productsAdded"] == 1
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "IMPORT_INVALID_STATE"

    def test_commit_unknown_preview(self, api_client):
        response = api_client.post(
            "/api/imports/commit",
            json={"previewId": "missing", "importedBy": "ops"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PREVIEW_NOT_FOUND"

    def test_direct_commit(self, api_client):
        body = preview_body({"A-1": PayloadFactory.row()}, importedBy="ops")

        response = api_client.post("/api/imports/commit/direct", json=body)

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_direct_commit_rejected(self, api_client):
        body = preview_body("garbage", importedBy="ops")

        response = api_client.post("/api/imports/commit/direct", json=body)

        assert response.status_code == 400
        assert response.json()["errors"][0]["productId"] == "system"


class TestAuditEndpoints:
    """GET /api/imports/audit"""

    def test_list_and_get(self, api_client):
        preview_id = stage(api_client, {"A-1": PayloadFactory.row()})["previewId"]
        import_id = api_client.post(
            "/api/imports/commit",
            json={"previewId": preview_id, "importedBy": "ops", "notes": "june"},
        ).json()["importId"]

        listing = api_client.get("/api/imports/audit", params={"vendorCode": "acme"}).json()
        record = api_client.get(f"/api/imports/audit/{import_id}").json()

        assert listing["total"] == 1
        assert listing["data"][0]["id"] == import_id
        assert record["notes"] == "june"
        assert record["changes"]["added"] == ["acme:A-1"]

    def test_other_vendor_filtered(self, api_client):
        preview_id = stage(api_client, {"A-1": PayloadFactory.row()})["previewId"]
        api_client.post("/api/imports/commit", json={"previewId": preview_id, "importedBy": "ops"})

        listing = api_client.get("/api/imports/audit", params={"vendorCode": "lib"}).json()

        assert listing["total"] == 0

    def test_missing_record(self, api_client):
        response = api_client.get("/api/imports/audit/nope")
        assert response.status_code == 404
