"""Tests for vn_director.pipeline: retry policy, prompt building, command stream."""

import pytest

from vn_director.llm import LLMError
from vn_director.models import ChatRequest, PromptMessage, TranscriptEntry, TurnRequest
from vn_director.pipeline import build_messages, request_completion, run_turn, split_paragraphs


class StubLLM:
    """Returns canned responses in order and records every request."""

    def __init__(self, *responses, on_call=None):
        self.responses = list(responses)
        self.requests: list[ChatRequest] = []
        self.on_call = on_call

    async def __call__(self, stage: str, request: ChatRequest) -> str:
        self.requests.append(request)
        if self.on_call is not None:
            self.on_call()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _chat() -> ChatRequest:
    return ChatRequest(model="m", messages=[PromptMessage(role="user", content="hi")])


# ---------------------------------------------------------------------------
# request_completion
# ---------------------------------------------------------------------------

async def test_retries_blank_responses():
    llm = StubLLM("", "   ", "ok")
    assert await request_completion(llm, _chat(), max_retries=2) == "ok"
    assert len(llm.requests) == 3


async def test_gives_up_after_limit(caplog):
    llm = StubLLM("", "", "never reached")
    assert await request_completion(llm, _chat(), max_retries=1) == ""
    assert len(llm.requests) == 2
    assert "giving up" in caplog.text


async def test_transport_error_not_retried():
    llm = StubLLM(LLMError("down"), "ok")
    with pytest.raises(LLMError):
        await request_completion(llm, _chat(), max_retries=3)
    assert len(llm.requests) == 1


# ---------------------------------------------------------------------------
# split_paragraphs
# ---------------------------------------------------------------------------

def test_split_paragraphs_keeps_splitter_on_non_final_chunks():
    assert split_paragraphs("a###b", "###") == ["a###", "b"]


def test_split_paragraphs_skips_blank_chunks():
    assert split_paragraphs("a###  ###b###", "###") == ["a###", "b###"]


def test_split_paragraphs_without_splitter():
    assert split_paragraphs("whole", "") == ["whole"]
    assert split_paragraphs("  ", "") == []


# ---------------------------------------------------------------------------
# build_messages
# ---------------------------------------------------------------------------

def test_build_messages_layout(session):
    transcript = [TranscriptEntry(speaker_name="Player", shown_text="Where is the lighthouse?")]
    messages = build_messages(session, transcript, "Answer the player.")
    assert [m.content for m in messages] == [
        "FRONT",
        "FORMAT",
        "Alice runs the café.",
        "The lighthouse is dark.",
        "Where is the lighthouse?",
        "Answer the player.",
        "BACK",
    ]


def test_build_messages_lore_window_limited(session):
    session.config.lore_search_length = 1
    transcript = [
        TranscriptEntry(speaker_name="Player", shown_text="The harbor?"),
        TranscriptEntry(speaker_name="Player", shown_text="Never mind."),
    ]
    contents = [m.content for m in build_messages(session, transcript, "go")]
    assert "Boats sleep in the harbor." not in contents


# ---------------------------------------------------------------------------
# run_turn
# ---------------------------------------------------------------------------

FEEDBACK = "{{{Alice}}} <<<Alice:smile>>> ((bg:park)) ((bgm:calm)) Hello there."


async def test_run_turn_command_order(session):
    llm = StubLLM(FEEDBACK)
    result = await run_turn(session=session, request=TurnRequest(id="t1", prompt="go"),
                            transcript=[], llm=llm)
    assert result.request_id == "t1"
    assert result.response == FEEDBACK
    assert result.advance is True
    assert [c.command for c in result.commands] == ["bgm", "changeBg", "changeFigure", "say"]

    bgm, bg, figure, say = result.commands
    assert bgm.content == "calm.mp3"
    assert bg.content == "park.webp"
    assert figure.content == "alice/model.json"
    assert figure.arg("motion") == "tap"
    assert say.content == "Hello there."
    assert say.arg("speaker") == "Alice"
    assert say.arg("AiFullShowText") == FEEDBACK


async def test_run_turn_uses_request_model(session):
    llm = StubLLM("Hi.")
    await run_turn(session=session, request=TurnRequest(prompt="go", model="other/model"),
                   transcript=[], llm=llm)
    assert llm.requests[0].model == "other/model"
    assert llm.requests[0].messages[-1].content == "BACK"


async def test_run_turn_paragraphs_share_paragraph_id(session):
    llm = StubLLM("{{{Alice}}} Hi.\n\n{{{Bob}}} Yo.")
    result = await run_turn(session=session, request=TurnRequest(prompt="go"),
                            transcript=[], llm=llm)
    says = [c for c in result.commands if c.command == "say"]
    assert [s.content for s in says] == ["Hi.", "Yo."]
    assert [s.arg("speaker") for s in says] == ["Alice", "Bob"]
    assert says[0].arg("AiShowTextUUIDForParagraph") == says[1].arg("AiShowTextUUIDForParagraph")
    assert says[0].arg("AiShowTextUUIDForSentence") != says[1].arg("AiShowTextUUIDForSentence")


async def test_run_turn_long_text_paged(session):
    text = "{{{Alice}}} " + "This sentence repeats itself. " * 6
    result = await run_turn(session=session, request=TurnRequest(prompt="go", for_figure=False),
                            transcript=[], llm=StubLLM(text))
    says = [c for c in result.commands if c.command == "say"]
    assert len(says) > 1
    assert all(len(s.content) <= session.config.page_length for s in says)


async def test_run_turn_respects_channel_flags(session):
    request = TurnRequest(prompt="go", for_background=False, for_music=False, for_dialogue=False)
    result = await run_turn(session=session, request=request, transcript=[], llm=StubLLM(FEEDBACK))
    assert [c.command for c in result.commands] == ["changeFigure"]
    assert session.orchestrator.last_bg is None


async def test_run_turn_scene_change_last(session):
    result = await run_turn(
        session=session,
        request=TurnRequest(prompt="go"),
        transcript=[],
        llm=StubLLM("((scene:festival)) Let's go."),
        current_scene="start.txt",
    )
    assert result.commands[-1].command == "changeScene"
    assert result.commands[-1].content == "festival.txt"


async def test_run_turn_show_after_point(session):
    result = await run_turn(session=session, request=TurnRequest(prompt="go", show_after_point=True),
                            transcript=[], llm=StubLLM("Hi."))
    assert result.advance is False


async def test_stale_turn_discarded(session):
    before = session.history.last_decoded_id
    transcript = [TranscriptEntry(speaker_name="Alice", shown_text="Hi.", paragraph_id="p1", full_ai_text="Hi.")]
    llm = StubLLM(FEEDBACK, on_call=session.invalidate)
    result = await run_turn(
        session=session, request=TurnRequest(prompt="go"), transcript=transcript, llm=llm
    )
    assert result is None
    assert session.history.last_decoded_id == before
    assert session.orchestrator.roster == []
    assert session.orchestrator.last_bgm is None
    assert session.orchestrator.paragraph_id == ""


async def test_empty_response_yields_no_commands(session):
    result = await run_turn(session=session, request=TurnRequest(prompt="go"),
                            transcript=[], llm=StubLLM("", ""))
    assert result.response == ""
    assert result.commands == []
