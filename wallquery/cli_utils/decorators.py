"""
wallquery Decorators

Decorators shared by the wallquery commands. catch_errors turns any error raised by a
command into a formatted failure message and a non-zero exit code, leaving click's own usage
errors to click. pass_data hands a command the WallqueryData built by the 'wallquery' group.

    @cli.command()
    @pass_data
    @catch_errors
    def list(data):
        ...
"""

import sys
from functools import wraps

import click

from wallquery.cli_utils.utils import WallqueryData
from wallquery.console import fail


pass_data = click.make_pass_decorator(WallqueryData)


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as error:
            fail(str(error))
            sys.exit(1)

    return wrapper
