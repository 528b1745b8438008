from __future__ import annotations

import asyncio
from typing import Optional

from core.approval import ApprovalEngine
from core.config import RouterConfig
from core.errors import CodeHostError
from core.feedback import FeedbackReactor, ReactionKind
from core.matcher import PatternMatcher
from core.models import InboundMessage, PullRequestState
from core.router import MessageRouter
from fakes import FakeCodeHost, FakeReactions, RecordingSleep


def _message(text: str, *, channel: str = "C1", user: str = "U1") -> InboundMessage:
    return InboundMessage(text=text, channel_id=channel, user_id=user, timestamp="1700000000.000100")


def _router(
    pattern: str,
    host: FakeCodeHost,
    reactions: FakeReactions,
    config: Optional[RouterConfig] = None,
) -> MessageRouter:
    return MessageRouter(
        matcher=PatternMatcher(pattern),
        engine=ApprovalEngine(host, sleep=RecordingSleep()),
        reactor=FeedbackReactor(reactions),
        config=config or RouterConfig(bot_user_id="UBOT"),
    )


def _names(reactions: FakeReactions) -> list[str]:
    return [name for _, _, name in reactions.added]


def test_match_without_references_reacts_and_stops() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    router = _router("deployed to production", host, reactions)

    asyncio.run(router.handle(_message("Application X deployed to production successfully")))

    assert _names(reactions) == [ReactionKind.NO_REFERENCES_FOUND.value]
    assert host.get_calls == []
    assert host.approve_calls == []


def test_url_reference_is_approved() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    router = _router("(?i)lgtm", host, reactions)

    asyncio.run(router.handle(_message("LGTM https://github.com/acme/widget/pull/42")))

    assert host.approve_calls == [("acme", "widget", 42)]
    assert _names(reactions) == [
        ReactionKind.PROCESSING_STARTED.value,
        ReactionKind.APPROVAL_SUCCEEDED.value,
    ]
    assert all(channel == "C1" and ts == "1700000000.000100" for channel, ts, _ in reactions.added)


def test_no_match_is_silent() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    router = _router("(?i)lgtm", host, reactions)

    asyncio.run(router.handle(_message("not yet #4")))

    assert reactions.added == []
    assert host.get_calls == []


def test_own_messages_are_ignored() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    router = _router("", host, reactions)

    asyncio.run(router.handle(_message("LGTM https://github.com/acme/widget/pull/42", user="UBOT")))

    assert reactions.added == []
    assert host.get_calls == []


def test_channel_filter() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    config = RouterConfig(channel_id="CREVIEW", bot_user_id="UBOT")
    router = _router("(?i)lgtm", host, reactions, config)

    asyncio.run(router.handle(_message("lgtm https://github.com/acme/widget/pull/1", channel="COTHER")))
    assert reactions.added == []

    asyncio.run(router.handle(_message("lgtm https://github.com/acme/widget/pull/1", channel="CREVIEW")))
    assert host.approve_calls == [("acme", "widget", 1)]


def test_bare_reference_uses_defaults() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    config = RouterConfig(bot_user_id="UBOT", default_owner="acme", default_repo="api")
    router = _router("(?i)lgtm", host, reactions, config)

    asyncio.run(router.handle(_message("lgtm #7")))

    assert host.approve_calls == [("acme", "api", 7)]


def test_unresolvable_reference_is_skipped_without_feedback() -> None:
    host = FakeCodeHost()
    reactions = FakeReactions()
    router = _router("(?i)lgtm", host, reactions)

    asyncio.run(router.handle(_message("lgtm #7")))

    assert host.get_calls == []
    assert _names(reactions) == [ReactionKind.PROCESSING_STARTED.value]


def test_one_failure_does_not_affect_siblings() -> None:
    class SplitHost(FakeCodeHost):
        async def create_approval_review(self, owner: str, repo: str, number: int) -> int:
            self.approve_calls.append((owner, repo, number))
            if number == 1:
                raise CodeHostError("PR #1 not found in acme/widget", 404)
            return 500 + number

    host = SplitHost()
    reactions = FakeReactions()
    config = RouterConfig(bot_user_id="UBOT", default_owner="acme", default_repo="widget")
    router = _router("(?i)lgtm", host, reactions, config)

    asyncio.run(router.handle(_message("lgtm #1 #2")))

    assert sorted(host.approve_calls) == [("acme", "widget", 1), ("acme", "widget", 2)]
    names = _names(reactions)
    assert names[0] == ReactionKind.PROCESSING_STARTED.value
    assert sorted(names[1:]) == sorted([ReactionKind.APPROVAL_FAILED.value, ReactionKind.APPROVAL_SUCCEEDED.value])


def test_invalid_target_reacts_with_failure() -> None:
    host = FakeCodeHost(state=PullRequestState(state="closed", merged=True))
    reactions = FakeReactions()
    router = _router("(?i)lgtm", host, reactions)

    asyncio.run(router.handle(_message("lgtm https://github.com/acme/widget/pull/9")))

    assert host.approve_calls == []
    assert _names(reactions)[-1] == ReactionKind.APPROVAL_FAILED.value


def test_reaction_failures_do_not_stop_approval() -> None:
    host = FakeCodeHost()
    router = _router("(?i)lgtm", host, FakeReactions(fail=True))

    asyncio.run(router.handle(_message("lgtm https://github.com/acme/widget/pull/3")))

    assert host.approve_calls == [("acme", "widget", 3)]


def test_on_message_does_not_block() -> None:
    class SlowHost(FakeCodeHost):
        def __init__(self) -> None:
            super().__init__()
            self.release = asyncio.Event()

        async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestState:
            await self.release.wait()
            return await super().get_pull_request(owner, repo, number)

    async def scenario() -> None:
        host = SlowHost()
        reactions = FakeReactions()
        router = _router("(?i)lgtm", host, reactions)

        task = router.on_message(_message("lgtm https://github.com/acme/widget/pull/5"))
        assert router.pending == 1
        assert not task.done()

        host.release.set()
        await task
        await asyncio.sleep(0)
        assert router.pending == 0
        assert host.approve_calls == [("acme", "widget", 5)]

    asyncio.run(scenario())


def test_shutdown_cancels_in_flight_messages() -> None:
    class HangingHost(FakeCodeHost):
        async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestState:
            await asyncio.sleep(3600)
            return self.state

    async def scenario() -> None:
        host = HangingHost()
        router = _router("(?i)lgtm", host, FakeReactions())
        task = router.on_message(_message("lgtm https://github.com/acme/widget/pull/5"))
        await asyncio.sleep(0)
        await router.shutdown()
        assert task.cancelled()
        assert host.approve_calls == []

    asyncio.run(scenario())


def test_unexpected_error_is_isolated_to_its_reference() -> None:
    class BrokenHost(FakeCodeHost):
        async def create_approval_review(self, owner: str, repo: str, number: int) -> int:
            self.approve_calls.append((owner, repo, number))
            if number == 1:
                raise RuntimeError("connection pool exploded")
            return 500 + number

    host = BrokenHost()
    reactions = FakeReactions()
    config = RouterConfig(bot_user_id="UBOT", default_owner="acme", default_repo="widget")
    router = _router("(?i)lgtm", host, reactions, config)

    asyncio.run(router.handle(_message("lgtm #1 #2")))

    assert sorted(host.approve_calls) == [("acme", "widget", 1), ("acme", "widget", 2)]
    names = _names(reactions)
    assert names[0] == ReactionKind.PROCESSING_STARTED.value
    assert sorted(names[1:]) == sorted([ReactionKind.APPROVAL_FAILED.value, ReactionKind.APPROVAL_SUCCEEDED.value])
