import click

from .evaluate import evaluate_cli


@click.group
def run():
    pass


run.add_command(evaluate_cli, name="evaluate")
