#!/usr/bin/env python3
import aws_cdk as cdk

from pikin_echo.pikin_echo_stack import PikinEchoStack

app = cdk.App()
PikinEchoStack(
    app,
    "PikinEchoStack",
    env=cdk.Environment(region="us-east-1"),
)

app.synth()
