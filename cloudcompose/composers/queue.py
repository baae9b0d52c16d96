"""
SQS queue with a dead-letter queue and, for standard queues, SNS fan-in.

Standard (non-FIFO) queues are subscribed either to a new SNS topic or to the
topic given as ExistingTopicArn. FIFO queues cannot subscribe to SNS topics,
so for them no topic, subscription or queue policy is created and the topic
options are ignored.
"""
from typing import Any, Mapping, Optional

from cloudcompose.composers import get_option
from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import GetAtt, Ref, Sub, stack_name_sub
from cloudcompose.models.resource import GraphBuilder, Resource, ResourceGraph

# Longest retention SQS allows: 14 days
MAX_RETENTION_SECONDS = 1209600

_PASS_THROUGH = (
    "ContentBasedDeduplication",
    "DelaySeconds",
    "KmsMasterKeyId",
    "KmsDataKeyReusePeriodSeconds",
    "MaximumMessageSize",
    "ReceiveMessageWaitTimeSeconds",
)


class QueueComposer:
    def compose(self, options: Optional[Mapping[str, Any]] = None) -> ResourceGraph:
        if options is None:
            raise ConfigurationError("Options required")
        name = options.get("LogicalName")
        if not name:
            raise ConfigurationError("You must provide a LogicalName")

        # CloudFormation rejects FifoQueue: false, it must be true or absent
        fifo = True if options.get("FifoQueue") else None
        condition = options.get("Condition")
        queue_name = get_option(options, "QueueName", stack_name_sub(name))
        dead_letter = f"{name}DeadLetter"

        props = {key: options.get(key) for key in _PASS_THROUGH}
        props.update(
            FifoQueue=fifo,
            MessageRetentionPeriod=get_option(options, "MessageRetentionPeriod", MAX_RETENTION_SECONDS),
            QueueName=Sub("${queue}.fifo", {"queue": queue_name}) if fifo else queue_name,
            RedrivePolicy={
                "maxReceiveCount": get_option(options, "maxReceiveCount", 10),
                "deadLetterTargetArn": GetAtt(dead_letter, "Arn"),
            },
            VisibilityTimeout=get_option(options, "VisibilityTimeout", 300),
        )

        graph = GraphBuilder()
        graph.add(name, Resource(
            "AWS::SQS::Queue",
            props,
            condition=condition,
            depends_on=options.get("DependsOn"),
        ))
        graph.add(dead_letter, Resource(
            "AWS::SQS::Queue",
            {
                "MessageRetentionPeriod": MAX_RETENTION_SECONDS,
                "VisibilityTimeout": get_option(options, "DeadLetterVisibilityTimeout", 300),
                # The dead-letter queue's type must match the main queue's type.
                "FifoQueue": fifo,
                "QueueName": Sub(
                    "${queue}-dead-letter.fifo" if fifo else "${queue}-dead-letter",
                    {"queue": queue_name},
                ),
            },
            condition=condition,
        ))

        if fifo:
            return graph.build()

        topic_arn = options.get("ExistingTopicArn")
        if not topic_arn:
            graph.add(f"{name}Topic", Resource(
                "AWS::SNS::Topic",
                {
                    "TopicName": get_option(options, "TopicName", stack_name_sub(name)),
                    "DisplayName": options.get("DisplayName"),
                },
                condition=condition,
            ))
            topic_arn = Ref(f"{name}Topic")

        graph.add(f"{name}Subscription", Resource(
            "AWS::SNS::Subscription",
            {
                "Protocol": "sqs",
                "TopicArn": topic_arn,
                "Endpoint": GetAtt(name, "Arn"),
            },
            condition=condition,
        ))

        # SNS can only deliver into the queue with an explicit queue policy
        graph.add(f"{name}Policy", Resource(
            "AWS::SQS::QueuePolicy",
            {
                "Queues": [Ref(name)],
                "PolicyDocument": {
                    "Version": "2008-10-17",
                    "Id": name,
                    "Statement": [
                        {
                            "Sid": name,
                            "Effect": "Allow",
                            "Action": "sqs:SendMessage",
                            "Principal": {"AWS": "*"},
                            "Resource": GetAtt(name, "Arn"),
                            "Condition": {
                                "ArnEquals": {"aws:SourceArn": topic_arn},
                            },
                        }
                    ],
                },
            },
            condition=condition,
        ))

        return graph.build()
