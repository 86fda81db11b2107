"""Tests for broker topology and topic routing"""
import pytest

from cityfix.core.errors import ValidationError
from cityfix.messaging.topology import (
    BindingSpec,
    BrokerTopology,
    ExchangeSpec,
    QueueSpec,
    routing_key_matches,
    topology_for,
    validate_routing_key,
)


class TestRoutingKeyMatches:
    """AMQP topic matching rules"""

    @pytest.mark.parametrize("pattern,key,expected", [
        ("report.created", "report.created", True),
        ("report.created", "report.updated", False),
        ("report.*", "report.created", True),
        ("report.*", "report.created.late", False),
        ("audit.#", "audit.login", True),
        ("audit.#", "audit.report.create", True),
        ("audit.#", "audit", True),
        ("audit.#", "auditing.login", False),
        ("#", "anything.at.all", True),
        ("*.created", "report.created", True),
        ("#.create", "audit.report.create", True),
        ("audit.*.create", "audit.report.create", True),
        ("audit.*.create", "audit.create", False),
    ])
    def test_matching(self, pattern, key, expected):
        assert routing_key_matches(pattern, key) is expected


class TestValidateRoutingKey:
    def test_plain_key_is_valid(self):
        validate_routing_key("audit.report.create")

    @pytest.mark.parametrize("key", ["", "audit..create", ".audit", "audit."])
    def test_empty_segments_rejected(self, key):
        with pytest.raises(ValidationError):
            validate_routing_key(key)

    def test_wildcards_rejected_in_publish_keys(self):
        with pytest.raises(ValidationError):
            validate_routing_key("audit.#")

    def test_wildcards_allowed_in_patterns(self):
        validate_routing_key("audit.#", allow_wildcards=True)
        validate_routing_key("*.created", allow_wildcards=True)

    def test_partial_wildcard_rejected(self):
        with pytest.raises(ValidationError):
            validate_routing_key("audit.rep*", allow_wildcards=True)


class TestBrokerTopology:
    def test_duplicates_collapse(self):
        exchange = ExchangeSpec("cityfix.reports")
        queue = QueueSpec("q")
        binding = BindingSpec("cityfix.reports", "q", "report.created")

        topology = BrokerTopology(
            exchanges=(exchange, exchange),
            queues=(queue, queue),
            bindings=(binding, binding),
        )

        assert topology.exchanges == (exchange,)
        assert topology.queues == (queue,)
        assert topology.bindings == (binding,)

    def test_merge_is_idempotent(self, test_config):
        topology = topology_for("report-service", test_config)
        assert topology.merge(topology) == topology

    def test_binding_to_undeclared_queue_rejected(self):
        with pytest.raises(ValueError):
            BrokerTopology(
                exchanges=(ExchangeSpec("x"),),
                bindings=(BindingSpec("x", "missing", "a.b"),),
            )

    def test_route_fans_out_to_every_matching_queue(self, test_config):
        topology = topology_for("report-service", test_config).merge(
            topology_for("user-service", test_config)
        )

        queues = topology.route("cityfix.reports", "report.created")

        assert queues == ["report.created.queue", "user.reports.counter.queue"]

    def test_route_unknown_key_matches_nothing(self, test_config):
        topology = topology_for("log-service", test_config)
        assert topology.route("cityfix.reports", "report.created") == []


class TestServiceTopologies:
    def test_default_names(self, test_config):
        topology = topology_for("log-service", test_config)

        assert [e.name for e in topology.exchanges] == ["cityfix.audit"]
        assert [q.name for q in topology.queues] == ["audit.logs.queue"]
        assert topology.bindings[0].pattern == "audit.#"

    def test_all_declared_durable(self, test_config):
        for role in ("report-service", "user-service", "log-service"):
            topology = topology_for(role, test_config)
            assert all(e.durable and e.type == "topic" for e in topology.exchanges)
            assert all(q.durable for q in topology.queues)

    def test_no_redelivery_arguments_by_default(self, test_config):
        queue = topology_for("user-service", test_config).queue("user.reports.counter.queue")
        assert queue.arguments == {}

    def test_delivery_limit_and_dead_letter(self, test_config):
        cfg = test_config.model_copy(update={
            "rabbitmq_delivery_limit": 5,
            "rabbitmq_dead_letter_exchange": "cityfix.dlx",
        })

        topology = topology_for("user-service", cfg)
        queue = topology.queue("user.reports.counter.queue")

        assert queue.arguments == {
            "x-queue-type": "quorum",
            "x-delivery-limit": 5,
            "x-dead-letter-exchange": "cityfix.dlx",
            "x-dead-letter-routing-key": "user.reports.counter.queue",
        }
        assert topology.queue("user.reports.counter.queue.dead") is not None
        assert topology.route("cityfix.dlx", "user.reports.counter.queue") == [
            "user.reports.counter.queue.dead"
        ]

    def test_unknown_role(self, test_config):
        with pytest.raises(ValueError):
            topology_for("billing-service", test_config)
