"""Tests for the client session state machine."""

import asyncio

import pytest

from nutrition_chat.client.store import (
    ANALYSIS_IN_PROGRESS_MESSAGE,
    NO_SESSION_MESSAGE,
    NutritionChatStore,
    SessionState,
)
from nutrition_chat.domain.nutrition import ImageAnalysisResult
from nutrition_chat.errors import ApiError, NetworkError
from tests.conftest import FakeChatApi, InMemorySessionStorage, TickingClock


@pytest.fixture
def api() -> FakeChatApi:
    return FakeChatApi()


@pytest.fixture
def storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture
def store(api: FakeChatApi, storage: InMemorySessionStorage) -> NutritionChatStore:
    return NutritionChatStore(api=api, storage=storage, clock=TickingClock())


def _upload(store: NutritionChatStore) -> None:
    asyncio.run(store.upload_and_analyze_image(b"img", "label.png", "image/png"))


def test_successful_analysis_creates_ready_session(
    store: NutritionChatStore, storage: InMemorySessionStorage
) -> None:
    assert store.state is SessionState.EMPTY

    _upload(store)

    assert store.state is SessionState.READY
    assert store.error is None
    session = store.session
    assert session is not None
    assert len(session.messages) == 1
    greeting = session.messages[0]
    assert greeting.role == "assistant"
    assert greeting.content == "I've analyzed the nutrition label. Protein bar"
    assert session.id.startswith(f"session-{session.created_at}-")
    assert session.nutrition_data is not None
    assert session.nutrition_data.protein == "5g"
    assert storage.stored == session


def test_food_dish_greeting(api: FakeChatApi, store: NutritionChatStore) -> None:
    api.analysis = ImageAnalysisResult(
        is_nutrition_label=False, food_recognition="Caesar salad"
    )

    _upload(store)

    assert store.session is not None
    assert store.session.messages[0].content == (
        "I've identified this as: Caesar salad. I can provide estimated "
        "nutritional information. What would you like to know?"
    )


def test_label_greeting_without_recognition(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    api.analysis = ImageAnalysisResult(is_nutrition_label=True)

    _upload(store)

    assert store.session is not None
    assert store.session.messages[0].content == (
        "I've analyzed the nutrition label. Ready to answer your questions!"
    )


def test_failed_analysis_returns_to_empty_with_error(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    api.analyze_error = ApiError("Failed to analyze image: boom", status_code=400)

    with pytest.raises(ApiError):
        _upload(store)

    assert store.state is SessionState.EMPTY
    assert store.session is None
    assert store.is_analyzing is False
    assert store.error == "Failed to analyze image: boom"


def test_new_upload_replaces_previous_session(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    _upload(store)
    first = store.session
    asyncio.run(store.send_message("hello"))

    api.analysis = ImageAnalysisResult(
        is_nutrition_label=False, food_recognition="Soup"
    )
    _upload(store)

    assert store.session is not None
    assert first is not None
    assert store.session.id != first.id
    assert len(store.session.messages) == 1
    assert store.session.nutrition_data is None


def test_send_without_session_sets_error_without_network_call(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    asyncio.run(store.send_message("hello"))

    assert store.error == NO_SESSION_MESSAGE
    assert store.state is SessionState.EMPTY
    assert api.chat_calls == []


def test_send_appends_user_then_assistant_message(
    api: FakeChatApi, store: NutritionChatStore, storage: InMemorySessionStorage
) -> None:
    _upload(store)
    assert store.session is not None
    nutrition_before = store.session.nutrition_data

    asyncio.run(store.send_message("how much protein?"))

    session = store.session
    assert session is not None
    assert [message.role for message in session.messages] == [
        "assistant",
        "user",
        "assistant",
    ]
    assert session.messages[1].content == "how much protein?"
    assert session.messages[2].content == "It has 5g of protein."
    assert session.nutrition_data == nutrition_before
    assert session.updated_at == session.messages[2].timestamp
    assert store.state is SessionState.READY
    assert storage.stored == session

    call = api.chat_calls[0]
    assert call["message"] == "how much protein?"
    assert call["nutrition_context"] == nutrition_before
    assert [turn.role for turn in call["conversation_history"]] == ["assistant"]


def test_user_message_is_visible_while_sending(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    _upload(store)
    observed: list[tuple[SessionState, int]] = []
    original_chat = api.chat

    async def observing_chat(*args, **kwargs):  # type: ignore[no-untyped-def]
        assert store.session is not None
        observed.append((store.state, len(store.session.messages)))
        return await original_chat(*args, **kwargs)

    api.chat = observing_chat  # type: ignore[method-assign]

    asyncio.run(store.send_message("hi"))

    assert observed == [(SessionState.SENDING, 2)]


def test_failed_send_keeps_optimistic_user_message(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    _upload(store)
    assert store.session is not None
    before = len(store.session.messages)
    api.chat_error = NetworkError("Could not reach the server")

    with pytest.raises(NetworkError):
        asyncio.run(store.send_message("hello?"))

    session = store.session
    assert session is not None
    assert len(session.messages) == before + 1
    assert session.messages[-1].role == "user"
    assert session.messages[-1].content == "hello?"
    assert store.is_sending is False
    assert store.error == "Could not reach the server"
    assert store.state is SessionState.READY


def test_concurrent_upload_is_rejected(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        original = api.analyze_image

        async def slow_analyze(*args, **kwargs):  # type: ignore[no-untyped-def]
            await gate.wait()
            return await original(*args, **kwargs)

        api.analyze_image = slow_analyze  # type: ignore[method-assign]
        first = asyncio.create_task(
            store.upload_and_analyze_image(b"a", "a.png", "image/png")
        )
        await asyncio.sleep(0)
        assert store.state is SessionState.ANALYZING

        await store.upload_and_analyze_image(b"b", "b.png", "image/png")
        assert store.error == ANALYSIS_IN_PROGRESS_MESSAGE

        gate.set()
        await first

    asyncio.run(scenario())

    assert api.analyze_calls == 1
    assert store.state is SessionState.READY


def test_clear_during_analysis_discards_late_result(
    api: FakeChatApi, store: NutritionChatStore
) -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        original = api.analyze_image

        async def slow_analyze(*args, **kwargs):  # type: ignore[no-untyped-def]
            await gate.wait()
            return await original(*args, **kwargs)

        api.analyze_image = slow_analyze  # type: ignore[method-assign]
        task = asyncio.create_task(
            store.upload_and_analyze_image(b"a", "a.png", "image/png")
        )
        await asyncio.sleep(0)
        store.clear_session()
        gate.set()
        await task

    asyncio.run(scenario())

    assert store.session is None
    assert store.state is SessionState.EMPTY


@pytest.mark.parametrize("prepare", ["empty", "ready", "errored", "sending"])
def test_clear_session_is_idempotent_from_any_state(
    api: FakeChatApi,
    store: NutritionChatStore,
    storage: InMemorySessionStorage,
    prepare: str,
) -> None:
    if prepare in {"ready", "sending"}:
        _upload(store)
    if prepare == "sending":
        store.is_sending = True
    if prepare == "errored":
        store.error = "something"

    store.clear_session()
    store.clear_session()

    assert store.session is None
    assert store.error is None
    assert store.is_analyzing is False
    assert store.is_sending is False
    assert store.state is SessionState.EMPTY
    assert storage.stored is None


def test_clear_error(store: NutritionChatStore) -> None:
    asyncio.run(store.send_message("hello"))

    store.clear_error()

    assert store.error is None


def test_reload_restores_session_but_not_transient_flags(
    api: FakeChatApi, store: NutritionChatStore, storage: InMemorySessionStorage
) -> None:
    _upload(store)
    store.error = "stale"
    store.is_sending = True

    reloaded = NutritionChatStore(api=api, storage=storage)

    assert reloaded.session == store.session
    assert reloaded.error is None
    assert reloaded.is_sending is False
    assert reloaded.is_analyzing is False
    assert reloaded.state is SessionState.READY


def test_reply_is_not_appended_to_session_created_in_same_millisecond(
    api: FakeChatApi, storage: InMemorySessionStorage
) -> None:
    store = NutritionChatStore(api=api, storage=storage, clock=lambda: 42)

    async def scenario() -> None:
        await store.upload_and_analyze_image(b"a", "a.png", "image/png")
        first_id = store.session.id if store.session else None
        gate = asyncio.Event()
        original_chat = api.chat

        async def slow_chat(*args, **kwargs):  # type: ignore[no-untyped-def]
            await gate.wait()
            return await original_chat(*args, **kwargs)

        api.chat = slow_chat  # type: ignore[method-assign]
        sending = asyncio.create_task(store.send_message("hi"))
        await asyncio.sleep(0)
        await store.upload_and_analyze_image(b"b", "b.png", "image/png")
        assert store.session is not None
        assert store.session.id != first_id
        gate.set()
        await sending

    asyncio.run(scenario())

    assert store.session is not None
    assert [message.role for message in store.session.messages] == ["assistant"]


def test_uploads_in_same_millisecond_get_distinct_session_ids(
    api: FakeChatApi, storage: InMemorySessionStorage
) -> None:
    store = NutritionChatStore(api=api, storage=storage, clock=lambda: 5)

    _upload(store)
    first = store.session
    _upload(store)

    assert first is not None and store.session is not None
    assert first.created_at == store.session.created_at == 5
    assert first.id != store.session.id
