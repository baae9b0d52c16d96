"""
Queue composer tests — dead-letter wiring, FIFO handling and SNS fan-in.
"""
import pytest

from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import GetAtt, Ref, Sub
from cloudcompose.template import render

TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:T"


# --------------------------------------------------------- Validation
class TestQueueValidation:
    def setup_method(self):
        from cloudcompose.composers.queue import QueueComposer
        self.composer = QueueComposer()

    def test_no_options(self):
        with pytest.raises(ConfigurationError):
            self.composer.compose()

    def test_empty_options(self):
        with pytest.raises(ConfigurationError):
            self.composer.compose({})

    def test_empty_logical_name(self):
        with pytest.raises(ConfigurationError, match="LogicalName"):
            self.composer.compose({"LogicalName": ""})


# --------------------------------------------------------- Standard queue
class TestStandardQueue:
    def setup_method(self):
        from cloudcompose.composers.queue import QueueComposer
        self.graph = QueueComposer().compose({"LogicalName": "MyQueue"})

    def test_resource_names_in_order(self):
        assert list(self.graph) == [
            "MyQueue",
            "MyQueueDeadLetter",
            "MyQueueTopic",
            "MyQueueSubscription",
            "MyQueuePolicy",
        ]

    def test_resource_types(self):
        assert self.graph["MyQueue"].resource_type == "AWS::SQS::Queue"
        assert self.graph["MyQueueDeadLetter"].resource_type == "AWS::SQS::Queue"
        assert self.graph["MyQueueTopic"].resource_type == "AWS::SNS::Topic"
        assert self.graph["MyQueueSubscription"].resource_type == "AWS::SNS::Subscription"
        assert self.graph["MyQueuePolicy"].resource_type == "AWS::SQS::QueuePolicy"

    def test_defaults(self):
        props = self.graph["MyQueue"].properties
        assert props["VisibilityTimeout"] == 300
        assert props["MessageRetentionPeriod"] == 1209600
        assert props["RedrivePolicy"]["maxReceiveCount"] == 10
        assert props["QueueName"] == Sub("${AWS::StackName}-MyQueue")

    def test_redrive_points_at_dead_letter(self):
        redrive = self.graph["MyQueue"].properties["RedrivePolicy"]
        assert redrive["deadLetterTargetArn"] == GetAtt("MyQueueDeadLetter", "Arn")

    def test_fifo_flag_absent_not_false(self):
        rendered = render(self.graph)
        assert "FifoQueue" not in rendered["MyQueue"]["Properties"]
        assert "FifoQueue" not in rendered["MyQueueDeadLetter"]["Properties"]

    def test_dead_letter_name(self):
        name = self.graph["MyQueueDeadLetter"].properties["QueueName"]
        assert name == Sub("${queue}-dead-letter", {"queue": Sub("${AWS::StackName}-MyQueue")})

    def test_primary_name_has_no_fifo_suffix(self):
        assert ".fifo" not in str(self.graph["MyQueue"].properties["QueueName"])

    def test_topic_created_with_default_name(self):
        topic = self.graph["MyQueueTopic"].properties
        assert topic["TopicName"] == Sub("${AWS::StackName}-MyQueue")
        assert topic["DisplayName"] is None

    def test_subscription_uses_local_topic_ref(self):
        sub = self.graph["MyQueueSubscription"].properties
        assert sub["TopicArn"] == Ref("MyQueueTopic")
        assert sub["Protocol"] == "sqs"
        assert sub["Endpoint"] == GetAtt("MyQueue", "Arn")

    def test_policy_allows_topic_to_send(self):
        doc = self.graph["MyQueuePolicy"].properties["PolicyDocument"]
        stmt = doc["Statement"][0]
        assert doc["Version"] == "2008-10-17"
        assert stmt["Action"] == "sqs:SendMessage"
        assert stmt["Principal"] == {"AWS": "*"}
        assert stmt["Resource"] == GetAtt("MyQueue", "Arn")
        assert stmt["Condition"]["ArnEquals"]["aws:SourceArn"] == Ref("MyQueueTopic")
        assert self.graph["MyQueuePolicy"].properties["Queues"] == [Ref("MyQueue")]


# --------------------------------------------------------- Options
class TestQueueOptions:
    def setup_method(self):
        from cloudcompose.composers.queue import QueueComposer
        self.composer = QueueComposer()

    def test_dead_letter_retention_is_fixed(self):
        graph = self.composer.compose({"LogicalName": "Q", "MessageRetentionPeriod": 60})
        assert graph["Q"].properties["MessageRetentionPeriod"] == 60
        assert graph["QDeadLetter"].properties["MessageRetentionPeriod"] == 1209600

    def test_dead_letter_visibility_timeout(self):
        graph = self.composer.compose({"LogicalName": "Q", "DeadLetterVisibilityTimeout": 30})
        assert graph["QDeadLetter"].properties["VisibilityTimeout"] == 30
        assert graph["Q"].properties["VisibilityTimeout"] == 300

    def test_pass_through_properties(self):
        graph = self.composer.compose({
            "LogicalName": "Q",
            "DelaySeconds": 5,
            "KmsMasterKeyId": "alias/aws/sqs",
            "ReceiveMessageWaitTimeSeconds": 20,
            "maxReceiveCount": 3,
        })
        props = graph["Q"].properties
        assert props["DelaySeconds"] == 5
        assert props["KmsMasterKeyId"] == "alias/aws/sqs"
        assert props["ReceiveMessageWaitTimeSeconds"] == 20
        assert props["RedrivePolicy"]["maxReceiveCount"] == 3

    def test_custom_queue_name(self):
        graph = self.composer.compose({"LogicalName": "Q", "QueueName": "orders"})
        assert graph["Q"].properties["QueueName"] == "orders"
        assert graph["QDeadLetter"].properties["QueueName"] == Sub(
            "${queue}-dead-letter", {"queue": "orders"}
        )

    def test_condition_on_every_resource(self):
        graph = self.composer.compose({"LogicalName": "Q", "Condition": "IsProd"})
        assert len(graph) == 5
        for resource in graph.values():
            assert resource.condition == "IsProd"

    def test_depends_on_only_on_primary(self):
        graph = self.composer.compose({"LogicalName": "Q", "DependsOn": ["Key", "Other"]})
        assert graph["Q"].depends_on == ["Key", "Other"]
        for name in ("QDeadLetter", "QTopic", "QSubscription", "QPolicy"):
            assert graph[name].depends_on is None

    def test_false_fifo_is_normalized(self):
        graph = self.composer.compose({"LogicalName": "Q", "FifoQueue": False})
        assert graph["Q"].properties["FifoQueue"] is None
        assert "QTopic" in graph

    def test_unknown_options_ignored(self):
        graph = self.composer.compose({"LogicalName": "Q", "Bogus": 1})
        assert "Bogus" not in graph["Q"].properties


# --------------------------------------------------------- Existing topic
class TestExistingTopic:
    def setup_method(self):
        from cloudcompose.composers.queue import QueueComposer
        self.graph = QueueComposer().compose({
            "LogicalName": "Q",
            "ExistingTopicArn": TOPIC_ARN,
            "TopicName": "ignored",
        })

    def test_no_topic_created(self):
        assert "QTopic" not in self.graph
        assert len(self.graph) == 4

    def test_subscription_uses_existing_arn(self):
        assert self.graph["QSubscription"].properties["TopicArn"] == TOPIC_ARN

    def test_policy_uses_existing_arn(self):
        stmt = self.graph["QPolicy"].properties["PolicyDocument"]["Statement"][0]
        assert stmt["Condition"]["ArnEquals"]["aws:SourceArn"] == TOPIC_ARN


# --------------------------------------------------------- FIFO
class TestFifoQueue:
    def setup_method(self):
        from cloudcompose.composers.queue import QueueComposer
        self.graph = QueueComposer().compose({
            "LogicalName": "Q",
            "FifoQueue": True,
            "ContentBasedDeduplication": True,
            "ExistingTopicArn": TOPIC_ARN,
            "TopicName": "my-topic",
            "DisplayName": "My Topic",
        })

    def test_only_queues_created(self):
        assert list(self.graph) == ["Q", "QDeadLetter"]

    def test_both_queues_fifo(self):
        assert self.graph["Q"].properties["FifoQueue"] is True
        assert self.graph["QDeadLetter"].properties["FifoQueue"] is True

    def test_fifo_suffixes(self):
        default_name = Sub("${AWS::StackName}-Q")
        assert self.graph["Q"].properties["QueueName"] == Sub("${queue}.fifo", {"queue": default_name})
        assert self.graph["QDeadLetter"].properties["QueueName"] == Sub(
            "${queue}-dead-letter.fifo", {"queue": default_name}
        )

    def test_topic_options_not_referenced(self):
        text = str(render(self.graph))
        assert TOPIC_ARN not in text
        assert "my-topic" not in text
        assert "My Topic" not in text

    def test_content_based_deduplication(self):
        assert self.graph["Q"].properties["ContentBasedDeduplication"] is True

    def test_fifo_suffix_over_intrinsic_name(self):
        from cloudcompose.composers.queue import QueueComposer
        graph = QueueComposer().compose({
            "LogicalName": "Q",
            "FifoQueue": True,
            "QueueName": Ref("QueueNameParam"),
        })
        rendered = render(graph)
        assert rendered["Q"]["Properties"]["QueueName"] == {
            "Fn::Sub": ["${queue}.fifo", {"queue": {"Ref": "QueueNameParam"}}]
        }
