"""Click base classes carrying per-command usage examples.

A command declared with ``examples="..."`` gains an eager ``--examples``
flag that prints them and exits, and its ``--help`` ends with a pointer
to that flag.
"""

from __future__ import annotations

from typing import Any

import click


class _ExamplesMixin:
    examples: str | None = None

    def _install_examples(self, examples: str | None) -> None:
        self.examples = examples
        if not examples:
            return
        params: list[click.Parameter] = self.params  # type: ignore[attr-defined]
        params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._print_examples,
                help="Show usage examples.",
            )
        )

    def _print_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)  # type: ignore[misc]
        if self.examples:
            formatter.write_paragraph()
            formatter.write_text(f"Run '{ctx.command_path} --examples' for usage examples.")


class EpicCommand(_ExamplesMixin, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._install_examples(examples)


class EpicGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands are :class:`EpicCommand` unless told otherwise."""

    command_class = EpicCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._install_examples(examples)
