"""Console progress and user notifications for command-line runs."""

import typer


class ConsoleProgress:
    """Prints a dot for every file that completes."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.files_done = 0

    def __call__(self, done: int, total: int) -> None:
        self.files_done += 1
        if self.enabled:
            typer.echo(".", nl=False, err=True)

    def finish(self) -> None:
        if self.enabled and self.files_done:
            typer.echo("", err=True)


class ConsoleNotifier:
    """Shows "please retry" problems to the operator."""

    def notify_problem(self, message: str, detail: str) -> None:
        typer.secho(f"\n{message}", fg=typer.colors.YELLOW, err=True)
        typer.echo(f"  Details: {detail}", err=True)
