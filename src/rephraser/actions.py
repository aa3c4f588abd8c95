"""Action registry: built-in prompt templates overlaid by user definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from rephraser.errors import ActionNotFoundError, ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


@dataclass(frozen=True, slots=True)
class ActionDefinition:
    """A named prompt template representing one text transformation."""

    name: str
    display_name: str
    prompt_template: str

    def __post_init__(self) -> None:
        """Reject definitions that could never be resolved or rendered."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError(
                "Action name must be a non-empty string",
                hint="Give every [[actions]] entry a name, e.g. name = 'polite'.",
            )
        if not isinstance(self.prompt_template, str):
            raise ConfigurationError(
                f"Action {self.name!r} has a non-string prompt_template",
            )


BUILTIN_ACTIONS: tuple[ActionDefinition, ...] = (
    ActionDefinition(
        name="polite",
        display_name="丁寧に",
        prompt_template=(
            "以下のテキストを丁寧な表現に変換してください。"
            "元の意味を保ったまま、敬語や丁寧語を適切に使用してください。\n"
            "\n"
            "テキスト:\n"
            "{text}\n"
            "\n"
            "丁寧な表現:"
        ),
    ),
    ActionDefinition(
        name="organize",
        display_name="整理する",
        prompt_template=(
            "以下のテキストを論理的に整理し、読みやすく構造化してください。\n"
            "\n"
            "テキスト:\n"
            "{text}\n"
            "\n"
            "整理されたテキスト:"
        ),
    ),
    ActionDefinition(
        name="summarize",
        display_name="要約",
        prompt_template=(
            "以下のテキストを簡潔に要約してください。\n"
            "\n"
            "テキスト:\n"
            "{text}\n"
            "\n"
            "要約:"
        ),
    ),
)


@dataclass(frozen=True)
class ActionRegistry:
    """Ordered, immutable mapping of action name to definition."""

    _actions: Mapping[str, ActionDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_actions", MappingProxyType(dict(self._actions)))

    def __hash__(self) -> int:
        return hash(frozenset(self._actions.items()))

    @classmethod
    def from_definitions(cls, definitions: Iterable[ActionDefinition]) -> ActionRegistry:
        """Build a registry from *definitions*; later duplicates replace earlier ones."""
        actions: dict[str, ActionDefinition] = {}
        for definition in definitions:
            actions[definition.name] = definition
        return cls(actions)

    def with_overrides(self, definitions: Iterable[ActionDefinition]) -> ActionRegistry:
        """Return a new registry with *definitions* overlaid by name.

        A definition whose name already exists replaces the old one entirely
        and keeps its position; new names are appended.
        """
        actions = dict(self._actions)
        for definition in definitions:
            actions[definition.name] = definition
        return ActionRegistry(actions)

    def resolve(self, name: str) -> ActionDefinition:
        """Return the action registered under exactly *name*.

        Raises:
            ActionNotFoundError: If no action has that name.
        """
        action = self._actions.get(name)
        if action is None:
            available = ", ".join(self._actions) or "(none)"
            raise ActionNotFoundError(name, hint=f"Available actions: {available}.")
        return action

    def get(self, name: str) -> ActionDefinition | None:
        """Return the action named *name*, or None."""
        return self._actions.get(name)

    def names(self) -> list[str]:
        """Action names in registry order."""
        return list(self._actions)

    def __iter__(self) -> Iterator[ActionDefinition]:
        return iter(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, name: object) -> bool:
        return name in self._actions


def build_registry(
    user_definitions: Iterable[ActionDefinition] = (),
) -> ActionRegistry:
    """Seed the built-in actions and overlay *user_definitions*."""
    return ActionRegistry.from_definitions(BUILTIN_ACTIONS).with_overrides(
        user_definitions
    )
