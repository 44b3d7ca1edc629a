"""Local content generators for demo agents and offline fallbacks.

Generators are looked up by template id; agent ids are bound to template ids.
The built-in generators are data: a YAML file of Jinja2 templates rendered in
a sandboxed environment. Python callables can be registered alongside them.

YAML entry format::

    grammar_correction:
      agent_ids: [agent_cf15c39b]
      summary: Grammar correction completed
      defaults:
        text: i am going to the market today
      template: |
        Corrected: "{{ text | capitalize_pronoun }}"
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

import yaml
from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from agentmarket.observability.logging import get_logger

logger = get_logger(__name__)

BUILTIN_TEMPLATES_FILE = Path(__file__).parent / "templates" / "demo_agents.yaml"

GENERIC_SUMMARY = "Content generated successfully"
GENERIC_TEMPLATE = (
    "I've processed your request for {{ agent_title }} with the provided inputs. "
    "Here's your generated content based on the parameters you specified."
)


class TemplateRegistryError(Exception):
    """Raised when a template file is malformed or a template fails to render."""


@dataclass(frozen=True)
class GeneratedContent:
    """Output of a local generator."""

    summary: str
    text_output: str


Generator = Callable[[Mapping[str, Any], Mapping[str, Any]], GeneratedContent]


def _filter_bullets(value: Any, bullet: str = "•") -> str:
    """Split a comma-separated value into bullet lines."""
    items = [item.strip() for item in str(value).split(",")]
    return "\n".join(f"{bullet} {item}" for item in items)


def _filter_first_item(value: Any) -> str:
    """First entry of a comma-separated value."""
    return str(value).split(",")[0].strip()


def _filter_hashtag(value: Any) -> str:
    """Collapse a phrase into a hashtag body."""
    return re.sub(r"[^a-zA-Z0-9]", "", re.sub(r"\s+", "", str(value)))


def _filter_capitalize_pronoun(value: Any) -> str:
    """Capitalize the standalone first-person pronoun."""
    return re.sub(r"\bi\b", "I", str(value))


def _create_environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(
        autoescape=False,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
    )
    env.filters["bullets"] = _filter_bullets
    env.filters["first_item"] = _filter_first_item
    env.filters["hashtag"] = _filter_hashtag
    env.filters["capitalize_pronoun"] = _filter_capitalize_pronoun
    return env


class JinjaGenerator:
    """Generator backed by a Jinja2 template.

    Input values that are missing or empty fall back to the entry's
    ``defaults``.
    """

    def __init__(
        self,
        env: SandboxedEnvironment,
        template_id: str,
        summary: str,
        template: str,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.template_id = template_id
        self.summary = summary
        self.defaults = dict(defaults or {})
        try:
            self._template = env.from_string(template)
        except TemplateError as e:
            raise TemplateRegistryError(f"Template '{template_id}' is invalid: {e}") from e

    def __call__(
        self, inputs: Mapping[str, Any], context: Mapping[str, Any]
    ) -> GeneratedContent:
        values: dict[str, Any] = dict(self.defaults)
        for key, value in inputs.items():
            if value is not None and value != "":
                values[key] = value
        values.update(context)

        try:
            text = self._template.render(values)
        except TemplateError as e:
            raise TemplateRegistryError(
                f"Template '{self.template_id}' failed to render: {e}"
            ) from e
        return GeneratedContent(summary=self.summary, text_output=text.strip("\n"))


class TemplateRegistry:
    """Registry of local generators.

    Example:
        >>> registry = TemplateRegistry.with_builtin_templates()
        >>> content = registry.generate_for_agent(
        ...     "agent_cf15c39b", {"text": "i am here"}, agent_title="Grammar Fixer"
        ... )
        >>> content.summary
        'Grammar correction completed'
    """

    def __init__(self) -> None:
        self._env = _create_environment()
        self._generators: dict[str, Generator] = {}
        self._agent_bindings: dict[str, str] = {}
        self._generic = JinjaGenerator(self._env, "generic", GENERIC_SUMMARY, GENERIC_TEMPLATE)

    @classmethod
    def with_builtin_templates(cls, extra_files: tuple[Path, ...] = ()) -> "TemplateRegistry":
        """Create a registry loaded with the bundled demo templates."""
        registry = cls()
        registry.load_file(BUILTIN_TEMPLATES_FILE)
        for path in extra_files:
            registry.load_file(path)
        return registry

    def register(
        self,
        template_id: str,
        generator: Generator,
        agent_ids: tuple[str, ...] = (),
    ) -> None:
        """Register a generator and bind agent ids to it.

        Args:
            template_id: Unique template id (replaces an existing one)
            generator: Callable ``(inputs, context) -> GeneratedContent``
            agent_ids: Agent ids served by this generator
        """
        self._generators[template_id] = generator
        for agent_id in agent_ids:
            self._agent_bindings[agent_id] = template_id

    def bind_agent(self, agent_id: str, template_id: str) -> None:
        """Serve an agent id with an existing template."""
        if template_id not in self._generators:
            raise KeyError(f"Unknown template: {template_id}")
        self._agent_bindings[agent_id] = template_id

    def load_file(self, path: Union[str, Path]) -> list[str]:
        """Load every template defined in a YAML file.

        Returns:
            The template ids loaded

        Raises:
            TemplateRegistryError: If the file is not a mapping of entries
        """
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise TemplateRegistryError(f"{path}: expected a mapping of templates")

        loaded = []
        for template_id, entry in data.items():
            if not isinstance(entry, dict) or "template" not in entry:
                raise TemplateRegistryError(f"{path}: entry '{template_id}' has no template")
            generator = JinjaGenerator(
                self._env,
                template_id=str(template_id),
                summary=str(entry.get("summary", GENERIC_SUMMARY)),
                template=str(entry["template"]),
                defaults=entry.get("defaults") or {},
            )
            self.register(
                str(template_id),
                generator,
                agent_ids=tuple(str(a) for a in entry.get("agent_ids") or ()),
            )
            loaded.append(str(template_id))

        logger.debug("templates_loaded", path=str(path), templates=loaded)
        return loaded

    def has_template(self, template_id: str) -> bool:
        return template_id in self._generators

    def template_for_agent(self, agent_id: str) -> Optional[str]:
        """Return the template id bound to an agent id, if any."""
        return self._agent_bindings.get(agent_id)

    def generate(
        self, template_id: str, inputs: Mapping[str, Any], **context: Any
    ) -> GeneratedContent:
        """Render a template by id.

        Raises:
            KeyError: If no such template is registered
        """
        generator = self._generators[template_id]
        return generator(inputs, context)

    def generate_for_agent(
        self, agent_id: str, inputs: Mapping[str, Any], agent_title: str = ""
    ) -> GeneratedContent:
        """Render the template bound to an agent, or the generic echo."""
        template_id = self._agent_bindings.get(agent_id)
        context = {"agent_title": agent_title, "agent_id": agent_id}
        if template_id is None:
            return self._generic(inputs, context)
        return self._generators[template_id](inputs, context)
