"""
Tests for the in-memory repository.
"""

import json
import threading

import pytest

from churnguard import InMemoryRepository
from churnguard.dataset import dump_dataset, parse_dataset
from churnguard.exceptions import CustomerNotFoundError, InterventionNotFoundError
from churnguard.models import NewIntervention


class TestReads:
    def test_get_customer(self, repository):
        assert repository.get_customer(1).name == "Acme Corp"

    def test_unknown_customer(self, repository):
        with pytest.raises(CustomerNotFoundError, match="Customer 999 not found"):
            repository.get_customer(999)

    def test_not_found_is_lookup_error(self, repository):
        with pytest.raises(LookupError):
            repository.get_intervention(999)

    def test_has_customer(self, repository):
        assert repository.has_customer(1)
        assert not repository.has_customer(999)

    def test_lists_are_copies(self, repository):
        customers = repository.get_customers()
        customers.clear()

        assert len(repository.get_customers()) == 12


class TestInterventions:
    def test_create_assigns_next_id(self, repository):
        intervention = repository.create_intervention(
            NewIntervention(customer_id=3, type="Account Review")
        )

        assert intervention.id == 4
        assert intervention.status == "active"
        assert intervention.completed_at is None
        assert repository.get_intervention(4) == intervention

    def test_create_for_unknown_customer(self, repository):
        with pytest.raises(CustomerNotFoundError):
            repository.create_intervention(NewIntervention(customer_id=999, type="Account Review"))

    def test_create_completed_sets_timestamp(self, repository):
        intervention = repository.create_intervention(
            NewIntervention(customer_id=3, type="Account Review", status="completed")
        )

        assert intervention.completed_at == intervention.created_at

    def test_complete_intervention(self, repository):
        completed = repository.complete_intervention(1)

        assert completed.status == "completed"
        assert completed.completed_at is not None
        assert repository.get_intervention(1).status == "completed"

    def test_completion_is_idempotent(self, repository):
        first = repository.complete_intervention(1)
        second = repository.complete_intervention(1)

        assert second == first
        assert second.completed_at == first.completed_at

    def test_complete_unknown_intervention(self, repository):
        with pytest.raises(InterventionNotFoundError):
            repository.complete_intervention(999)

    def test_concurrent_creates_get_unique_ids(self, repository):
        def create():
            for _ in range(25):
                repository.create_intervention(NewIntervention(customer_id=1, type="Account Review"))

        threads = [threading.Thread(target=create) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [i.id for i in repository.get_interventions()]
        assert len(ids) == len(set(ids)) == 103


class TestReload:
    def test_reload_restores_initial_data(self, repository):
        repository.create_intervention(NewIntervention(customer_id=3, type="Account Review"))
        repository.complete_intervention(1)

        repository.reload()

        assert len(repository.get_interventions()) == 3
        assert repository.get_intervention(1).status == "active"

    def test_reload_rereads_source_file(self, tmp_path, dataset):
        path = tmp_path / "data.json"
        document = dump_dataset(dataset)
        path.write_text(json.dumps(document))
        repository = InMemoryRepository.from_file(path)

        document["customers"] = document["customers"][:2]
        document["interventions"] = []
        path.write_text(json.dumps(document))
        repository.reload()

        assert len(repository.get_customers()) == 2

    def test_replace_dataset(self, repository, dataset):
        document = dump_dataset(dataset)
        document["customers"] = document["customers"][:3]
        document["interventions"] = []

        repository.replace_dataset(parse_dataset(document))

        assert len(repository.get_customers()) == 3
        assert repository.get_interventions() == []

    def test_uploaded_data_is_reload_baseline(self, repository, dataset):
        document = dump_dataset(dataset)
        document["customers"] = document["customers"][:3]
        document["interventions"] = []
        repository.replace_dataset(parse_dataset(document))

        repository.create_intervention(NewIntervention(customer_id=1, type="Account Review"))
        repository.reload()

        assert len(repository.get_customers()) == 3
        assert repository.get_interventions() == []

    def test_snapshot_round_trips(self, repository):
        snapshot = repository.snapshot()

        assert len(snapshot["customers"]) == 12
        assert snapshot["dashboard_settings"]["churn_change"] == -2.3
        json.dumps(snapshot)


class TestAlertsAndIntegrations:
    def test_integrations(self, repository):
        integrations = repository.get_integrations()

        assert len(integrations) == 3
        assert integrations[2].status == "error"

    def test_mark_alert_read(self, repository):
        repository.mark_alert_read(4)
        repository.mark_alert_read(4)

        assert repository.read_alert_ids() == {4}

    def test_read_state_reset_by_reload(self, repository):
        repository.mark_alert_read(1)
        repository.reload()

        assert repository.read_alert_ids() == set()

    def test_read_state_reset_by_replace(self, repository, dataset):
        repository.mark_alert_read(1)
        repository.replace_dataset(dataset)

        assert repository.read_alert_ids() == set()

    def test_snapshot_includes_integrations(self, repository):
        snapshot = repository.snapshot()

        assert [i["name"] for i in snapshot["integrations"]] == \
            ["Salesforce CRM", "Zendesk Support", "Stripe Billing"]
        assert isinstance(snapshot["integrations"][0]["last_sync_at"], str)
