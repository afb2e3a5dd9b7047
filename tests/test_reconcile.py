"""Tests for workspace upsert and retirement."""

from datetime import date
from pathlib import Path

from db.models import Centre, Workspace
from etl.reconcile import reconcile_listings, retire_missing_listings, upsert_listings
from import_helpers import TYPE_LABELS, all_workspaces, listing_csv


def write_listing(tmp_path: Path, *rows: str, name: str = "offices.csv") -> str:
    path = tmp_path / name
    path.write_bytes(listing_csv(*rows))
    return str(path)


class TestUpsert:
    """Rows create or update one workspace per (centre, office number)."""

    def test_creates_workspace_and_reports_unknown_centre(self, tmp_path, session, session_factory, centre_p1):
        listing = write_listing(
            tmp_path,
            "Corner office;05/03/2024;Private Office;A1;1;4;1,200;£120;1,500;P1",
            "Somewhere else;;;B1;;;;;;P2",
        )

        result = reconcile_listings(session, [listing], TYPE_LABELS)
        session.commit()

        assert result.notifications == ["There is no centre with ID #P2."]
        assert result.failed == 0
        assert result.abort_error() is None
        assert result.processed == {"P1": ["A1"]}

        workspaces = all_workspaces(session_factory)
        assert list(workspaces) == [("P1", "A1")]
        office = workspaces[("P1", "A1")]
        assert office.price == "1200"
        assert office.currency == "GBP"
        assert office.size == "1500"
        assert office.type == 0
        assert office.availability == date(2024, 3, 5)
        assert office.description == "Corner office"
        assert office.active is True
        assert office.visible_on_web is True

    def test_updates_existing_workspace_and_republishes_it(self, tmp_path, session, session_factory, seed):
        seed(
            Centre(reference="P1"),
            Workspace(centre_reference="P1", office_number="A1", price="500", currency="EUR",
                      active=False, visible_on_web=False),
        )
        listing = write_listing(tmp_path, "Refreshed;;Penthouse;A1;;;2,000;£;;P1")

        upsert_listings(session, [listing], TYPE_LABELS)
        session.commit()

        workspaces = all_workspaces(session_factory)
        assert len(workspaces) == 1
        office = workspaces[("P1", "A1")]
        assert office.price == "2000"
        assert office.currency == "GBP"
        assert office.type is None
        assert office.availability is None
        assert office.active is True
        assert office.visible_on_web is True

    def test_repeated_key_in_one_run_updates_the_same_workspace(self, tmp_path, session, session_factory, centre_p1):
        first = write_listing(tmp_path, "First;;;A1;;;100;;;P1", name="a.csv")
        second = write_listing(tmp_path, "Second;;;A1;;;200;;;P1", name="b.csv")

        result = upsert_listings(session, [first, second], TYPE_LABELS)
        session.commit()

        assert result.saved == 2
        assert result.processed == {"P1": ["A1"]}
        workspaces = all_workspaces(session_factory)
        assert len(workspaces) == 1
        assert workspaces[("P1", "A1")].description == "Second"
        assert workspaces[("P1", "A1")].price == "200"

    def test_row_failure_is_counted_and_loop_continues(self, tmp_path, session, centre_p1, rejected_office):
        """A row the database rejects is rolled back alone; later rows are still processed."""
        listing = write_listing(
            tmp_path,
            f"Broken;;;{rejected_office};;;;;;P1",
            "Fine;;;A1;;;;;;P1",
        )

        result = upsert_listings(session, [listing], TYPE_LABELS)

        assert result.failed == 1
        assert result.saved == 1
        assert result.notifications == [f"Office {rejected_office} for center P1 was not saved."]
        assert result.processed == {"P1": [rejected_office, "A1"]}
        assert [w.office_number for w in session.query(Workspace).all()] == ["A1"]
        assert str(result.abort_error()) == "Some offices could not be processed."

    def test_row_without_office_number_is_reported_and_skipped(self, tmp_path, session, session_factory, centre_p1):
        listing = write_listing(tmp_path, "No number;;;;;;;;;P1", "Fine;;;A1;;;;;;P1")

        result = reconcile_listings(session, [listing], TYPE_LABELS)
        session.commit()

        assert result.failed == 0
        assert result.abort_error() is None
        assert result.notifications == ["Row 1 for center P1 has no office number."]
        assert result.processed == {"P1": ["A1"]}
        assert list(all_workspaces(session_factory)) == [("P1", "A1")]


class TestRetirement:
    """Workspaces missing from the import are retired unless exempt."""

    def seed_centre(self, seed):
        seed(
            Centre(reference="P1"),
            Centre(reference="P9"),
            Workspace(centre_reference="P1", office_number="A2", retain_on_missing_from_import=False),
            Workspace(centre_reference="P1", office_number="A3", retain_on_missing_from_import=True),
            Workspace(centre_reference="P9", office_number="Z1"),
        )

    def test_missing_workspaces_are_retired_and_exempt_ones_kept(self, tmp_path, session, session_factory, seed):
        self.seed_centre(seed)
        listing = write_listing(tmp_path, "Corner office;;;A1;;;1,200;£120;;P1")

        result = reconcile_listings(session, [listing], TYPE_LABELS)
        session.commit()

        assert result.retired == 1
        workspaces = all_workspaces(session_factory)
        assert workspaces[("P1", "A1")].active is True
        assert workspaces[("P1", "A2")].active is False
        assert workspaces[("P1", "A2")].visible_on_web is False
        assert workspaces[("P1", "A3")].active is True
        assert workspaces[("P1", "A3")].visible_on_web is True

    def test_centres_absent_from_import_are_untouched(self, tmp_path, session, session_factory, seed):
        self.seed_centre(seed)
        listing = write_listing(tmp_path, "Corner office;;;A1;;;;;;P1")

        reconcile_listings(session, [listing], TYPE_LABELS)
        session.commit()

        workspaces = all_workspaces(session_factory)
        assert workspaces[("P9", "Z1")].active is True
        assert workspaces[("P9", "Z1")].visible_on_web is True

    def test_retirement_skipped_when_a_row_failed(self, tmp_path, session, seed, rejected_office):
        self.seed_centre(seed)
        listing = write_listing(tmp_path, f"Broken;;;{rejected_office};;;;;;P1", "Fine;;;A1;;;;;;P1")

        result = reconcile_listings(session, [listing], TYPE_LABELS)

        assert result.failed == 1
        assert result.retired == 0
        assert session.query(Workspace).filter_by(centre_reference="P1", office_number="A2").one().active is True

    def test_already_retired_workspaces_are_not_counted_again(self, session, seed):
        seed(
            Centre(reference="P1"),
            Workspace(centre_reference="P1", office_number="A2", active=False, visible_on_web=False),
        )

        assert retire_missing_listings(session, {"P1": ["A1"]}) == 0
