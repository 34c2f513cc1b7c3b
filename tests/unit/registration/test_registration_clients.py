"""Tests for the Crossref and DataCite deposit clients and the legacy updater."""

import json
import threading
from unittest.mock import patch

import pytest

from commonmeta.core.exceptions import CommonmetaError, NetworkFailureError
from commonmeta.formats.crossrefxml.writer import Account as CrossrefAccount
from commonmeta.model.record import Record
from commonmeta.registration import crossref, datacite, roguescholar
from commonmeta.registration.response import (
    STATUS_FAILED,
    STATUS_FAILED_MISSING_DOI,
    STATUS_SKIPPED,
    STATUS_SUBMITTED,
    STATUS_UPDATED_LEGACY,
    APIResponse,
)

UUID = "4e4bf150-751f-4245-b4ca-fe69e3c3bb24"

SUCCESS = "<html><body><h2>SUCCESS</h2><p>Your batch submission was successfully received.</p></body></html>"
FAILURE = "<html><body><h2>FAILURE</h2><p>Authentication failed for login_id user.</p></body></html>"
BATCH = b"<doi_batch><head><doi_batch_id>abc123</doi_batch_id></head></doi_batch>"


def make_record(doi, uuid=""):
    identifiers = [{"identifier": uuid, "identifierType": "UUID"}] if uuid else []
    return Record.from_dict(
        {
            "id": f"https://doi.org/{doi}" if doi.startswith("10.") else doi,
            "type": "BlogPost",
            "titles": [{"title": "A post"}],
            "identifiers": identifiers,
        }
    )


def agency_lookup(agency):
    """get_doi_ra replacement that fails for the 10.5555 test prefix."""

    def lookup(doi):
        if doi.startswith("10.5555/"):
            raise NetworkFailureError("HTTP 503", status=503)
        return agency, True

    return lookup


@pytest.fixture
def no_sleep():
    with patch("commonmeta.core.retry.time.sleep") as sleep:
        yield sleep


@pytest.fixture
def account():
    return CrossrefAccount(login_id="user", login_passwd="secret", depositor="Front Matter")


# ============================================================================
# Response envelope
# ============================================================================


class TestAPIResponse:
    """Tests for APIResponse."""

    def test_to_dict_drops_empty_fields(self) -> None:
        response = APIResponse(doi="10.59350/sfzv4-xdb68", status=STATUS_SUBMITTED)
        assert response.to_dict() == {"doi": "10.59350/sfzv4-xdb68", "status": "submitted"}

    @pytest.mark.parametrize(
        "status,failed",
        [("failed", True), ("failed_missing_doi", True), ("published", False), ("", False)],
    )
    def test_failed(self, status, failed) -> None:
        assert APIResponse(status=status).failed is failed


# ============================================================================
# Crossref
# ============================================================================


class TestCrossrefAcknowledgement:
    """Tests for crossref.parse_acknowledgement()."""

    def test_success(self) -> None:
        assert crossref.parse_acknowledgement(SUCCESS) is None

    def test_failure(self) -> None:
        with pytest.raises(crossref.DepositFailedError, match="Authentication failed"):
            crossref.parse_acknowledgement(FAILURE)


class TestCrossrefDeposit:
    """Tests for crossref.deposit() and upsert_all()."""

    def test_deposit(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=SUCCESS)
        assert crossref.deposit(BATCH, account, client=mock_client) == SUCCESS

        args, kwargs = mock_client.request.call_args
        assert args == ("POST", "https://doi.crossref.org/servlet/deposit")
        assert kwargs["data"] == {
            "operation": "doMDUpload",
            "login_id": "user",
            "login_passwd": "secret",
        }
        _, content, mime_type = kwargs["files"]["fname"]
        assert (content, mime_type) == (BATCH, "application/xml")

    def test_deposit_to_test_system(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=SUCCESS)
        crossref.deposit(BATCH, account, development=True, client=mock_client)
        assert mock_client.request.call_args.args[1] == "https://test.crossref.org/servlet/deposit"

    def test_deposit_is_retried(self, mock_client, make_response, account, no_sleep) -> None:
        mock_client.request.side_effect = [
            NetworkFailureError("HTTP 503 Error", status=503),
            make_response(200, text=SUCCESS),
        ]
        crossref.deposit(BATCH, account, client=mock_client)
        assert mock_client.request.call_count == 2

    def test_upsert_all(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=SUCCESS)
        records = [
            make_record("10.59350/sfzv4-xdb68", uuid=UUID),
            make_record("10.57689/abc-123"),
            make_record("https://example.org/no-doi"),
        ]

        with patch("commonmeta.registration.crossref.write_all", return_value=BATCH) as write_all:
            responses = crossref.upsert_all(records, account, client=mock_client)

        assert [(r.doi, r.status) for r in responses] == [
            ("10.59350/sfzv4-xdb68", STATUS_SUBMITTED),
            ("https://example.org/no-doi", STATUS_FAILED_MISSING_DOI),
        ]
        assert responses[0].doi_batch_id == "abc123"
        assert responses[0].uuid == UUID
        assert responses[0].timestamp
        assert [r.id for r in write_all.call_args.args[0]] == ["https://doi.org/10.59350/sfzv4-xdb68"]

    def test_upsert_all_failed_deposit(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=FAILURE)
        with patch("commonmeta.registration.crossref.write_all", return_value=BATCH):
            responses = crossref.upsert_all([make_record("10.59350/sfzv4-xdb68")], account, client=mock_client)
        assert responses[0].status == STATUS_FAILED

    def test_upsert_all_updates_legacy_records(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=SUCCESS)
        with patch("commonmeta.registration.crossref.write_all", return_value=BATCH), patch(
            "commonmeta.registration.crossref.roguescholar.update_legacy_record"
        ) as update:
            crossref.upsert_all(
                [make_record("10.59350/sfzv4-xdb68", uuid=UUID)],
                account,
                legacy_key="key",
                client=mock_client,
            )
        update.assert_called_once()
        assert update.call_args.kwargs == {"field": "doi"}

    def test_upsert_skips_other_agencies(self, mock_client, account) -> None:
        response = crossref.upsert(make_record("10.57689/abc-123"), account, client=mock_client)
        assert response.status == STATUS_SKIPPED
        mock_client.request.assert_not_called()

    def test_upsert_all_failed_agency_lookup(self, mock_client, make_response, account) -> None:
        mock_client.request.return_value = make_response(200, text=SUCCESS)
        records = [make_record("10.5555/unreachable"), make_record("10.59350/sfzv4-xdb68")]

        with patch(
            "commonmeta.registration.crossref.get_doi_ra", side_effect=agency_lookup("Crossref")
        ), patch("commonmeta.registration.crossref.write_all", return_value=BATCH) as write_all:
            responses = crossref.upsert_all(records, account, client=mock_client)

        assert [(r.doi, r.status) for r in responses] == [
            ("10.5555/unreachable", STATUS_FAILED),
            ("10.59350/sfzv4-xdb68", STATUS_SUBMITTED),
        ]
        assert [r.id for r in write_all.call_args.args[0]] == ["https://doi.org/10.59350/sfzv4-xdb68"]


# ============================================================================
# DataCite
# ============================================================================


class TestDataCite:
    """Tests for the DataCite client."""

    @pytest.fixture
    def datacite_account(self):
        return datacite.Account(client="FM.TEST", password="secret", development=True)

    def test_account(self, datacite_account) -> None:
        assert datacite_account.api_url == "https://api.test.datacite.org"
        assert datacite_account.auth == ("FM.TEST", "secret")
        assert datacite.Account().api_url == "https://api.datacite.org"

    def test_upsert(self, mock_client, make_response, datacite_account) -> None:
        mock_client.request.return_value = make_response(
            201,
            {
                "data": {
                    "id": "10.57689/abc-123",
                    "attributes": {"created": "2024-01-01T00:00:00Z", "updated": "2024-01-02T00:00:00Z"},
                }
            },
        )
        with patch("commonmeta.registration.datacite.write", return_value=b'{"doi":"10.57689/abc-123"}'):
            response = datacite.upsert(make_record("10.57689/abc-123"), datacite_account, client=mock_client)

        assert response.status == STATUS_SUBMITTED
        assert (response.id, response.created) == ("10.57689/abc-123", "2024-01-01T00:00:00Z")
        assert response.timestamp == "2024-01-02T00:00:00Z"

        args, kwargs = mock_client.request.call_args
        assert args == ("PUT", "https://api.test.datacite.org/dois/10.57689%2Fabc-123")
        assert json.loads(kwargs["data"]) == {
            "data": {"type": "dois", "attributes": {"doi": "10.57689/abc-123"}}
        }
        assert kwargs["auth"] == ("FM.TEST", "secret")
        assert kwargs["headers"] == {"Content-Type": "application/vnd.api+json"}

    def test_upsert_rejected(self, mock_client, datacite_account) -> None:
        mock_client.request.side_effect = NetworkFailureError("HTTP 422 Error", status=422)
        with patch("commonmeta.registration.datacite.write", return_value=b"{}"):
            response = datacite.upsert(make_record("10.57689/abc-123"), datacite_account, client=mock_client)
        assert response.status == STATUS_FAILED
        assert mock_client.request.call_count == 1

    def test_upsert_all_skips_other_agencies(self, mock_client, datacite_account) -> None:
        records = [make_record("10.59350/sfzv4-xdb68"), make_record("https://example.org/no-doi")]
        responses = datacite.upsert_all(records, datacite_account, client=mock_client)
        assert [r.status for r in responses] == [STATUS_FAILED_MISSING_DOI]
        mock_client.request.assert_not_called()

    def test_upsert_all_failed_agency_lookup(self, mock_client, make_response, datacite_account) -> None:
        mock_client.request.return_value = make_response(201, {"data": {"id": "10.57689/abc-123"}})
        records = [make_record("10.5555/unreachable"), make_record("10.57689/abc-123")]

        with patch(
            "commonmeta.registration.datacite.get_doi_ra", side_effect=agency_lookup("DataCite")
        ), patch("commonmeta.registration.datacite.write", return_value=b"{}"):
            responses = datacite.upsert_all(records, datacite_account, client=mock_client)

        assert [(r.doi, r.status) for r in responses] == [
            ("10.5555/unreachable", STATUS_FAILED),
            ("10.57689/abc-123", STATUS_SUBMITTED),
        ]
        assert mock_client.request.call_count == 1

    def test_upsert_all_in_parallel(self, settings, mock_client, make_response, datacite_account) -> None:
        settings.workers = 3
        barrier = threading.Barrier(3)

        def put(method, url, **kwargs):
            barrier.wait(timeout=5)
            doi = url.rsplit("/", 1)[1].replace("%2F", "/")
            return make_response(201, {"data": {"id": doi}})

        mock_client.request.side_effect = put
        dois = ["10.57689/aaa", "10.57689/bbb", "10.57689/ccc"]
        with patch("commonmeta.registration.datacite.write", return_value=b"{}"):
            responses = datacite.upsert_all(
                [make_record(doi) for doi in dois], datacite_account, client=mock_client
            )

        assert [(r.doi, r.id, r.status) for r in responses] == [
            (doi, doi, STATUS_SUBMITTED) for doi in dois
        ]


# ============================================================================
# Legacy database
# ============================================================================


class TestLegacyUpdate:
    """Tests for roguescholar.update_legacy_record()."""

    def test_update_rid(self, mock_client, make_response) -> None:
        mock_client.request.return_value = make_response(204)
        response = APIResponse(doi="10.59350/sfzv4-xdb68", id="1xr1m-wnh16", uuid=UUID)

        response = roguescholar.update_legacy_record(response, "key", field="rid", client=mock_client)

        assert response.status == STATUS_UPDATED_LEGACY
        args, kwargs = mock_client.request.call_args
        assert args == (
            "PATCH",
            f"https://bosczcmeodcrajtcaddf.supabase.co/rest/v1/posts?id=eq.{UUID}",
        )
        assert kwargs["json"]["rid"] == "1xr1m-wnh16"
        assert kwargs["json"]["indexed"] == "true"
        assert kwargs["headers"]["apikey"] == "key"

    def test_update_doi(self, mock_client, make_response) -> None:
        mock_client.request.return_value = make_response(204)
        response = APIResponse(doi="10.59350/sfzv4-xdb68", uuid=UUID)
        roguescholar.update_legacy_record(response, "key", field="rid", client=mock_client)
        assert mock_client.request.call_args.kwargs["json"]["doi"] == "10.59350/sfzv4-xdb68"

    @pytest.mark.parametrize(
        "key,response",
        [
            ("", APIResponse(doi="10.59350/sfzv4-xdb68", uuid=UUID)),
            ("key", APIResponse(doi="10.59350/sfzv4-xdb68")),
            ("key", APIResponse(uuid=UUID)),
        ],
    )
    def test_missing_values(self, mock_client, key, response) -> None:
        with pytest.raises(CommonmetaError):
            roguescholar.update_legacy_record(response, key, client=mock_client)
        mock_client.request.assert_not_called()
