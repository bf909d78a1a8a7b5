"""Tests for RecordedActionEngine (every non-DA game)."""

from src.eg_gateway.broadcaster import EventName
from tests.fakes import FakeDb, build_fake_stack


def _setup(game_type: str):
    stack = build_fake_stack()
    session = stack.store.add_session(game_type=game_type, status="active", code="SEQ001")
    rnd = stack.store.add_round(session, 1, "active")
    return stack, stack.registry.get(game_type), session, rnd


class TestSimultaneous:
    async def test_one_decision_per_round(self) -> None:
        stack, engine, session, rnd = _setup("prisoner_dilemma")
        player = stack.store.add_player(session, "player", name="Ann")

        first = await engine.handle_action(rnd.id, player.id, {"choice": "cooperate"}, session.code, FakeDb())
        second = await engine.handle_action(rnd.id, player.id, {"choice": "defect"}, session.code, FakeDb())

        assert first.success is True
        assert second.success is False
        assert second.error_code == 5002
        assert "already submitted" in second.error
        assert len(stack.store.actions) == 1
        assert stack.broadcaster.payloads(EventName.ACTION_SUBMITTED) == [
            {"playerId": player.id, "playerName": "Ann", "actionType": "pd_choice"}
        ]

    async def test_closed_round_rejected(self) -> None:
        stack, engine, session, _ = _setup("public_goods")
        player = stack.store.add_player(session, "player")
        done = stack.store.add_round(session, 2, "completed")
        result = await engine.handle_action(done.id, player.id, {"contribution": 5}, session.code, FakeDb())
        assert result.success is False
        assert result.error_code == 2002
        assert result.http_status == 409

    async def test_round_end_reports_who_acted(self) -> None:
        stack, engine, session, rnd = _setup("stag_hunt")
        a = stack.store.add_player(session, "player")
        b = stack.store.add_player(session, "player")
        stack.store.add_player(session, "player")
        await engine.handle_action(rnd.id, a.id, {"choice": "stag"}, session.code, FakeDb())
        await engine.handle_action(rnd.id, b.id, {"choice": "hare"}, session.code, FakeDb())

        result = await engine.process_round_end(rnd.id, session.code, FakeDb())
        assert {r.player_id for r in result.player_results} == {a.id, b.id}
        assert result.summary["totalActions"] == 2

    async def test_state_lists_my_actions(self) -> None:
        stack, engine, session, rnd = _setup("dictator")
        player = stack.store.add_player(session, "player")
        await engine.handle_action(rnd.id, player.id, {"give": 3}, session.code, FakeDb())
        state = await engine.get_game_state(rnd.id, player.id, FakeDb())
        assert state["myActions"] == [{"type": "give", "data": {"type": "give", "give": 3.0}}]


class TestSequential:
    async def test_second_mover_must_wait_for_partner(self) -> None:
        stack, engine, session, rnd = _setup("ultimatum")
        stack.store.add_player(session, "proposer")
        responder = stack.store.add_player(session, "responder")

        result = await engine.handle_action(rnd.id, responder.id, {"accept": True}, session.code, FakeDb())

        assert result.success is False
        assert result.error == "Invalid action: Your partner has not submitted yet. Please wait."

    async def test_first_move_broadcast_carries_partner(self) -> None:
        stack, engine, session, rnd = _setup("ultimatum")
        proposer = stack.store.add_player(session, "proposer")
        responder = stack.store.add_player(session, "responder")

        first = await engine.handle_action(rnd.id, proposer.id, {"offer": 4}, session.code, FakeDb())
        second = await engine.handle_action(rnd.id, responder.id, {"accept": True}, session.code, FakeDb())

        assert first.data["stage"] == "first_move"
        assert second.data["stage"] == "second_move"
        event = stack.broadcaster.payloads(EventName.FIRST_MOVE_SUBMITTED)[0]
        assert event["partnerId"] == responder.id
        assert event["action"] == {"type": "offer", "offer": 4.0}

    async def test_first_mover_cannot_respond(self) -> None:
        stack, engine, session, rnd = _setup("trust_game")
        sender = stack.store.add_player(session, "sender")
        stack.store.add_player(session, "receiver")
        result = await engine.handle_action(rnd.id, sender.id, {"amountReturned": 2}, session.code, FakeDb())
        assert result.success is False
        assert "first movers submit" in result.error

    async def test_unpaired_second_mover(self) -> None:
        stack, engine, session, rnd = _setup("bargaining")
        responder = stack.store.add_player(session, "responder")
        result = await engine.handle_action(rnd.id, responder.id, {"accept": False}, session.code, FakeDb())
        assert result.error == "Invalid action: No partner assigned yet"


class TestSpecialized:
    async def test_multi_step_phases_allowed(self) -> None:
        stack, engine, session, rnd = _setup("discovery_process")
        player = stack.store.add_player(session, "producer")
        first = await engine.handle_action(
            rnd.id, player.id, {"type": "set_production", "allocation": [100, 0]}, session.code, FakeDb()
        )
        second = await engine.handle_action(
            rnd.id, player.id, {"type": "start_production"}, session.code, FakeDb()
        )
        assert first.success and second.success
        assert len(stack.store.actions) == 2
