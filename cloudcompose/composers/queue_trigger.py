"""
Lambda function that consumes messages from an SQS queue.

Builds on a function composer's graph (function, log group, role), adds an
event source mapping and grants the generated role access to the queue.
"""
import copy
from typing import Any, Mapping, Optional

from cloudcompose.composers import get_option
from cloudcompose.composers.function import FunctionComposer
from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import Ref, Sub
from cloudcompose.models.resource import GraphBuilder, Resource, ResourceGraph


def queue_access_statement(queue_arn: Any) -> dict:
    """IAM statement letting a function consume from queue_arn."""
    return {
        "Effect": "Allow",
        "Action": [
            "sqs:DeleteMessage",
            "sqs:ReceiveMessage",
            "sqs:GetQueueAttributes",
        ],
        "Resource": [
            queue_arn,
            Sub("${arn}/*", {"arn": queue_arn}),
        ],
    }


def add_role_statement(role: Resource, statement: dict) -> Resource:
    """
    Return a copy of role with statement added to its inline policies.

    The statement is appended to the first inline policy when the role has
    any; callers with several unrelated inline policies get it in that first
    one regardless. A role with no inline policies gets a new SQSAccess policy.
    """
    properties = copy.deepcopy(role.properties)
    policies = properties.get("Policies")
    if policies:
        policies[0]["PolicyDocument"]["Statement"].append(statement)
    else:
        properties["Policies"] = [
            {
                "PolicyName": "SQSAccess",
                "PolicyDocument": {
                    "Version": "2012-10-17",
                    "Statement": [statement],
                },
            }
        ]
    return Resource(
        role.resource_type,
        properties,
        condition=role.condition,
        depends_on=role.depends_on,
    )


class QueueTriggerComposer:
    def __init__(self, function_composer=None):
        self.function_composer = function_composer or FunctionComposer()

    def compose(self, options: Optional[Mapping[str, Any]] = None) -> ResourceGraph:
        if options is None:
            raise ConfigurationError("Options required")

        name = options.get("LogicalName")
        if not name:
            raise ConfigurationError("You must provide a LogicalName")
        event_source_arn = options.get("EventSourceArn")
        reserved = options.get("ReservedConcurrentExecutions")
        if event_source_arn is None or reserved is None:
            raise ConfigurationError(
                "You must provide an EventSourceArn and ReservedConcurrentExecutions"
            )
        # Intrinsic values (e.g. a Ref to a parameter) are left to CloudFormation
        if isinstance(reserved, (int, float)) and reserved < 0:
            raise ConfigurationError(
                "ReservedConcurrentExecutions must be greater than or equal to 0"
            )

        base = self.function_composer.compose(options)

        graph = GraphBuilder.from_graph(base)
        graph.add(f"{name}EventSource", Resource(
            "AWS::Lambda::EventSourceMapping",
            {
                "Enabled": get_option(options, "Enabled", True),
                "BatchSize": get_option(options, "BatchSize", 1),
                "EventSourceArn": event_source_arn,
                "FunctionName": Ref(name),
            },
            condition=options.get("Condition"),
        ))

        # An externally supplied role is the caller's to manage
        role = graph.get(f"{name}Role")
        if role is not None:
            graph.replace(f"{name}Role", add_role_statement(role, queue_access_statement(event_source_arn)))

        return graph.build()
