"""Tests for the B3 agent factories."""

from unittest.mock import MagicMock

import pytest

from b3_agents.b3_agent.agent import (
    ADMIN_EXPERT_NAME,
    B3_AGENT_NAME,
    build_system_prompt,
    format_index,
    create_admin_expert,
    create_b3_agent,
)
from b3_agents.b3_agent.config import B3Config
from b3_agents.b3_agent.drive import DriveApp, DriveFile
from b3_agents.core import (
    CallContext,
    CallRequest,
    ConversationLogger,
    ConversationSession,
    DelegatedAgent,
    GenerationConfig,
    ModelClient,
    TextPart,
    Turn,
)


class NullLogger(ConversationLogger):
    def log_question(self, source_name: str, text: str) -> None:
        pass

    def log_response(self, source_name: str, text: str) -> None:
        pass


class ScriptedSession(ConversationSession):
    def __init__(self, turns: list):
        self.turns = list(turns)
        self.sent: list[list] = []

    async def send(self, context: CallContext, *parts) -> Turn:
        self.sent.append(list(parts))
        return self.turns.pop(0)


class ScriptedClient(ModelClient):
    """One scripted session per model name; records the configs it was given."""

    def __init__(self, scripts: dict[str, list]):
        self.sessions = {model: ScriptedSession(turns) for model, turns in scripts.items()}
        self.configs: dict[str, GenerationConfig] = {}

    async def create_session(self, model: str, config: GenerationConfig) -> ConversationSession:
        self.configs[model] = config
        return self.sessions[model]


def make_app() -> MagicMock:
    app = MagicMock(spec=DriveApp)
    app.b3_folder = "B3"
    app.b4_folder = "B4"
    return app


class TestFactories:
    """Test suite for create_b3_agent and create_admin_expert."""

    def test_admin_expert(self):
        config = B3Config(expert_model="claude-expert")
        expert = create_admin_expert(config)

        assert expert.name == ADMIN_EXPERT_NAME
        assert expert.capabilities == []
        assert expert.config.model == "claude-expert"
        assert expert.config.builtin_tools == config.builtin_tools

    def test_b3_agent_capabilities(self):
        agent = create_b3_agent(make_app(), B3Config())

        names = [c.declare().name for c in agent.capabilities]
        assert agent.name == B3_AGENT_NAME
        assert names == [
            "B3Files",
            "B4Files",
            "ReadFile",
            "UpdateFile",
            "B4Delete",
            "B4Merge",
            "ExtractForm",
            "FillForm",
            "CreateDoc",
            "DownloadToB4",
            ADMIN_EXPERT_NAME,
        ]
        assert isinstance(agent.capabilities[-1], DelegatedAgent)

    def test_b3_agent_settings_follow_config(self):
        config = B3Config(model="claude-main", max_calls=7, dispatch_all_calls=True)
        agent = create_b3_agent(make_app(), config)

        assert agent.config.model == "claude-main"
        assert agent.config.max_calls == 7
        assert agent.config.dispatch_all_calls is True

    def test_system_prompt_embeds_indexes(self):
        b3_files = [DriveFile(id="1", name="passport.pdf", description="Passport")]
        prompt = build_system_prompt(B3Config(b4_folder="Procedures"), b3_files, [])

        assert format_index(b3_files) in prompt
        assert "passport.pdf" in prompt
        assert "Procedures" in prompt
        assert "{b3_index}" not in prompt


class TestEndToEnd:
    """List-my-files scenario through the whole stack."""

    @pytest.mark.asyncio
    async def test_list_my_files(self):
        """Test that the agent calls B3Files once and answers with the model's text."""
        app = make_app()
        app.b3_files.return_value = [DriveFile(id="1", name="passport.pdf")]
        client = ScriptedClient(
            {
                "claude-expert": [],
                "claude-main": [
                    Turn([CallRequest(name="B3Files", id="call-1", arguments={})]),
                    Turn([TextPart("You have one file: passport.pdf.")]),
                ],
            }
        )
        config = B3Config(model="claude-main", expert_model="claude-expert", reader_model="claude-main")
        agent = create_b3_agent(app, config)
        await agent.start(CallContext(), client, NullLogger())

        result = await agent.ask(CallContext(), TextPart("list my files"))

        assert result.text == "You have one file: passport.pdf."
        app.b3_files.assert_called_once_with()
        response = client.sessions["claude-main"].sent[1][0]
        assert response.id == "call-1"
        assert response.name == "B3Files"
        assert response.payload == {"output": [{"id": "1", "name": "passport.pdf"}]}
        assert [d.name for d in client.configs["claude-main"].tools][-1] == ADMIN_EXPERT_NAME
        assert client.configs["claude-expert"].builtin_tools == config.builtin_tools
