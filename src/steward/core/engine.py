"""Engine: wires config, policy, provider and hooks into an agent."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from steward.agents.manager import LeadAgent
from steward.core.agent import Agent
from steward.core.config import (
    apply_env_overrides,
    load_env_config,
    load_policy_file,
    load_steward_md,
    load_toml_config,
    policy_from_mapping,
    resolve_api_key,
    run_config_from_mapping,
)
from steward.core.stream import EventStream
from steward.permissions.policy import Policy
from steward.providers.registry import DEFAULT_MODEL, create_provider, get_model_info
from steward.types.agents import AgentDef
from steward.types.config import RunConfig
from steward.types.hooks import AnyHook
from steward.types.providers import ProviderAdapter
from steward.types.tools import Tool

logger = logging.getLogger(__name__)


def create_agent(
    *,
    model: str | None = None,
    tools: Iterable[Tool] = (),
    system_prompt: str | None = None,
    policy: Policy | None = None,
    policy_file: str | Path | None = None,
    working_dir: str | Path | None = None,
    hooks: Iterable[AnyHook] = (),
    sub_agents: Iterable[AgentDef] = (),
    config: RunConfig | None = None,
    api_key: str | None = None,
    _provider: ProviderAdapter | None = None,
) -> Agent:
    """Build an :class:`Agent` (or a :class:`LeadAgent` when *sub_agents* is given).

    Args:
        model: Model ID or alias. Falls back to ``STEWARD_MODEL``, then the
            ``[defaults]`` table of ``.steward/config.toml``.
        tools: Tools to register.
        system_prompt: Base system prompt. ``STEWARD.md`` in the working
            directory is appended when present.
        policy: Explicit policy. Takes precedence over *policy_file* and the
            ``[policy]`` config table. Environment overrides are not applied
            to an explicit policy.
        policy_file: YAML or TOML policy file.
        working_dir: Directory the agent works in (default: cwd).
        hooks: Hooks to register, in order.
        sub_agents: Definitions for delegation.
        config: Engine settings; defaults come from the ``[run]`` config table.
        api_key: Provider API key (or set via env var / user config).
        _provider: Injected provider for testing (private).
    """
    resolved_dir = Path(working_dir).resolve() if working_dir else Path.cwd()
    toml_config = load_toml_config(resolved_dir)
    env_config = load_env_config()

    if policy is None:
        policy_path = policy_file or toml_config.get("policy_file")
        if policy_path:
            path = Path(policy_path)
            if not path.is_absolute():
                path = resolved_dir / path
            policy = load_policy_file(path, working_dir=resolved_dir)
        elif "policy" in toml_config:
            policy = policy_from_mapping(toml_config["policy"], working_dir=resolved_dir)
        else:
            policy = Policy.standard(resolved_dir)
        policy = apply_env_overrides(policy)

    if config is None:
        config = run_config_from_mapping(toml_config.get("run", {}))

    if _provider is not None:
        provider = _provider
    else:
        model_id = (
            model
            or env_config.get("model")
            or toml_config.get("defaults", {}).get("model")
            or DEFAULT_MODEL
        )
        info = get_model_info(model_id)
        provider = create_provider(
            model_id, api_key=resolve_api_key(info.provider if info else "anthropic", api_key),
        )

    prompt = system_prompt or ""
    if project_md := load_steward_md(resolved_dir):
        prompt = f"{prompt}\n\n# Project Instructions\n{project_md}" if prompt else project_md

    options: dict[str, Any] = {
        "system_prompt": prompt,
        "policy": policy,
        "working_dir": resolved_dir,
        "hooks": hooks,
        "config": config,
    }
    definitions = tuple(sub_agents)
    if definitions:
        factory = None
        if _provider is None:
            def factory(name: str) -> ProviderAdapter:
                return create_provider(name, api_key=resolve_api_key("anthropic", api_key))

        agent: Agent = LeadAgent(provider, definitions, tools, provider_factory=factory, **options)
    else:
        agent = Agent(provider, tools, **options)

    logger.debug("Created %r", agent)
    return agent


def run(prompt: str, **kwargs: Any) -> EventStream:
    """One-shot entry point: ``create_agent(**kwargs).run(prompt)``."""
    return create_agent(**kwargs).run(prompt)
