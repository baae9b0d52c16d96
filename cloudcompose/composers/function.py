"""
Lambda function with its log group, an alarm on function errors and, unless
RoleArn is given, an execution role.
"""
from typing import Any, Mapping, Optional

from cloudcompose.composers import get_option
from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import GetAtt, Ref, Sub, stack_name_sub
from cloudcompose.models.resource import GraphBuilder, Resource, ResourceGraph

_PASS_THROUGH = (
    "Description",
    "Environment",
    "Layers",
    "ReservedConcurrentExecutions",
    "TracingConfig",
    "VpcConfig",
    "Tags",
)


def _assume_role_policy() -> dict:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "lambda.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }


class FunctionComposer:
    def compose(self, options: Optional[Mapping[str, Any]] = None) -> ResourceGraph:
        if options is None:
            raise ConfigurationError("Options required")
        name = options.get("LogicalName")
        code = options.get("Code")
        if not name or code is None:
            raise ConfigurationError("You must provide a LogicalName and Code")

        condition = options.get("Condition")
        role_arn = options.get("RoleArn")

        props = {
            "Code": code,
            "FunctionName": get_option(options, "FunctionName", stack_name_sub(name)),
            "Handler": get_option(options, "Handler", "index.handler"),
            "MemorySize": get_option(options, "MemorySize", 128),
            "Role": role_arn if role_arn else GetAtt(f"{name}Role", "Arn"),
            "Runtime": get_option(options, "Runtime", "python3.12"),
            "Timeout": get_option(options, "Timeout", 300),
        }
        props.update({key: options.get(key) for key in _PASS_THROUGH})

        graph = GraphBuilder()
        graph.add(name, Resource(
            "AWS::Lambda::Function",
            props,
            condition=condition,
            depends_on=options.get("DependsOn"),
        ))
        graph.add(f"{name}Logs", Resource(
            "AWS::Logs::LogGroup",
            {
                "LogGroupName": Sub("/aws/lambda/${name}", {"name": Ref(name)}),
                "RetentionInDays": get_option(options, "LogRetentionInDays", 14),
            },
            condition=condition,
        ))
        graph.add(f"{name}ErrorAlarm", Resource(
            "AWS::CloudWatch::Alarm",
            {
                "AlarmName": Sub(f"${{AWS::StackName}}-{name}-Errors"),
                "AlarmDescription": f"Error alarm for the {name} function",
                "AlarmActions": options.get("AlarmActions"),
                "Namespace": "AWS/Lambda",
                "MetricName": "Errors",
                "Dimensions": [{"Name": "FunctionName", "Value": Ref(name)}],
                "Statistic": "Sum",
                "ComparisonOperator": "GreaterThanThreshold",
                "Threshold": get_option(options, "ErrorAlarmThreshold", 0),
                "Period": get_option(options, "ErrorAlarmPeriod", 60),
                "EvaluationPeriods": get_option(options, "ErrorAlarmEvaluationPeriods", 5),
                "TreatMissingData": "notBreaching",
            },
            condition=condition,
        ))

        if role_arn:
            return graph.build()

        statements = [
            {
                "Effect": "Allow",
                "Action": "logs:*",
                "Resource": GetAtt(f"{name}Logs", "Arn"),
            }
        ]
        statements.extend(get_option(options, "Statement", []))

        graph.add(f"{name}Role", Resource(
            "AWS::IAM::Role",
            {
                "AssumeRolePolicyDocument": _assume_role_policy(),
                "Policies": [
                    {
                        "PolicyName": "main",
                        "PolicyDocument": {
                            "Version": "2012-10-17",
                            "Statement": statements,
                        },
                    }
                ],
            },
            condition=condition,
        ))

        return graph.build()
