# selector.py
from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import click

from .model import Catalog

# (sorted names, default) -> chosen name
Picker = Callable[[List[str], Optional[str]], str]


class NoPipelinesFound(LookupError):
    pass


class InvalidJobName(ValueError):
    """An explicitly requested job is not in the catalog."""

    def __init__(self, name: str, valid_names: Sequence[str]):
        self.name = name
        self.valid_names = sorted(valid_names)
        super().__init__(
            f"Invalid job name {name!r}. Valid names: {', '.join(self.valid_names) or '(none)'}"
        )


def default_name(names: Sequence[str]) -> Optional[str]:
    """First name (in sorted order) whose last path segment is 'master'."""
    for name in sorted(names):
        if name.rsplit("/", 1)[-1] == "master":
            return name
    return None


def prompt_for_name(names: List[str], default: Optional[str]) -> str:
    """Ask the user to pick one pipeline on the terminal."""
    for i, name in enumerate(names, start=1):
        click.echo(f"  {i:>3}. {name}")
    answer = click.prompt(
        "Which pipeline do you want to start",
        type=click.Choice(names),
        default=default,
        show_choices=False,
    )
    return answer


def select(
    catalog: Catalog,
    explicit_names: Sequence[str],
    pick: Picker = prompt_for_name,
) -> List[str]:
    """
    Resolve which jobs to start.

    Explicit names must all be catalog keys. With no names, the user picks
    one of the sorted keys, defaulting to a `.../master` job if any.

    Raises:
        InvalidJobName: If an explicit name is not in the catalog
        NoPipelinesFound: If nothing is selected explicitly and the catalog is empty
        click.Abort: If the prompt is aborted
    """
    names = sorted(catalog)
    if explicit_names:
        for name in explicit_names:
            if name not in catalog:
                raise InvalidJobName(name, names)
        return list(explicit_names)

    if not names:
        raise NoPipelinesFound("No pipelines found to start")

    chosen = pick(names, default_name(names))
    if chosen not in catalog:
        raise InvalidJobName(chosen, names)
    return [chosen]
