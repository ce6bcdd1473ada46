import pytest

from flowsim.records.store import InMemoryRecordStore
from flowsim.simulator import FlowSimulator


@pytest.fixture(autouse=True)
def _flowsim_env(monkeypatch):
    """Pin configuration so tests never depend on the developer's shell."""
    monkeypatch.setenv("FLOWSIM_DEFAULT_UNTIL_LIMIT", "60")
    monkeypatch.setenv("FLOWSIM_MAX_DISPATCH_DEPTH", "8")
    monkeypatch.setenv("FLOWSIM_LOG_REDACT", "true")
    yield


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def simulator(store):
    sim = FlowSimulator(store=store)
    yield sim
    sim.close()


def record_trigger(entity="account", message=1, filtering=None, filter_expression=None, scope=4):
    parameters = {
        "subscriptionRequest/message": message,
        "subscriptionRequest/entityname": entity,
        "subscriptionRequest/scope": scope,
    }
    if filtering is not None:
        parameters["subscriptionRequest/filteringattributes"] = filtering
    if filter_expression is not None:
        parameters["subscriptionRequest/filterexpression"] = filter_expression
    return {
        "When_a_row_is_added": {
            "type": "OpenApiConnectionWebhook",
            "inputs": {
                "host": {
                    "connectionName": "shared_commondataserviceforapps",
                    "operationId": "SubscribeWebhookTrigger",
                    "apiId": "/providers/Microsoft.PowerApps/apis/shared_commondataserviceforapps",
                },
                "parameters": parameters,
            },
        }
    }


def record_action(operation_id, parameters, run_after=None):
    return {
        "type": "OpenApiConnection",
        "inputs": {
            "host": {
                "connectionName": "shared_commondataserviceforapps",
                "operationId": operation_id,
                "apiId": "/providers/Microsoft.PowerApps/apis/shared_commondataserviceforapps",
            },
            "parameters": parameters,
        },
        "runAfter": run_after or {},
    }


def flow_document(actions, name="test_flow", state="Started", triggers=None, **trigger_kwargs):
    return {
        "name": name,
        "properties": {
            "displayName": name.replace("_", " ").title(),
            "state": state,
            "definition": {
                "$schema": "https://schema.management.azure.com/providers/Microsoft.Logic/schemas/2016-06-01/workflowdefinition.json#",
                "contentVersion": "1.0.0.0",
                "triggers": triggers if triggers is not None else record_trigger(**trigger_kwargs),
                "actions": actions,
            },
        },
    }


@pytest.fixture
def documents():
    """Builders for exported flow documents."""

    class _Builders:
        flow = staticmethod(flow_document)
        trigger = staticmethod(record_trigger)
        record_action = staticmethod(record_action)

    return _Builders
