"""
Test the giveaway lifecycle
Creation, joining, ending (fair and forced), rerolls and the conditional end
"""

import asyncio

import pytest

from core.errors import ValidationError, NotFoundError, ConflictError

HOUR_MS = 3600 * 1000


def create(service, message_id='msg-1', winners_count=1, duration_ms=HOUR_MS, server_id='guild-1'):
    return asyncio.run(service.create(
        server_id=server_id,
        prize='Secret Brainrot',
        winners_count=winners_count,
        duration_ms=duration_ms,
        channel_id='chan-1',
        chat_message_id=message_id,
    ))


def join(service, giveaway_id, *user_ids):
    for user_id in user_ids:
        assert asyncio.run(service.add_participant(giveaway_id, user_id)) is True


# ========================================
# Creation
# ========================================

def test_create_persists_active_giveaway(service, clock):
    giveaway_id = create(service, winners_count=3)
    giveaway = asyncio.run(service.get_by_id(giveaway_id))

    assert giveaway['prize'] == 'Secret Brainrot'
    assert giveaway['server_id'] == 'guild-1'
    assert giveaway['chat_message_id'] == 'msg-1'
    assert giveaway['winners_count'] == 3
    assert giveaway['end_time'] == clock() + HOUR_MS
    assert giveaway['participants'] == []
    assert giveaway['winners'] == []
    assert giveaway['ended'] is False
    assert giveaway['is_rigged'] is False
    assert giveaway['forced_winner_id'] is None


@pytest.mark.parametrize('winners_count', [0, -2, True, '1'])
def test_create_rejects_bad_winner_count(service, winners_count):
    with pytest.raises(ValidationError):
        create(service, winners_count=winners_count)


@pytest.mark.parametrize('duration_ms', [0, -1000, 1.5])
def test_create_rejects_bad_duration(service, duration_ms):
    with pytest.raises(ValidationError):
        create(service, duration_ms=duration_ms)


def test_create_rejects_empty_prize(service):
    with pytest.raises(ValidationError) as exc:
        asyncio.run(service.create('guild-1', '  ', 1, HOUR_MS, 'chan-1', 'msg-1'))
    assert exc.value.field == 'prize'


def test_create_rejects_reused_message_id(service):
    create(service, message_id='same')
    with pytest.raises(ConflictError) as exc:
        create(service, message_id='same')
    assert exc.value.reason == ConflictError.DUPLICATE


def test_create_registers_end_with_scheduler(service, clock):
    scheduled = []

    class RecordingScheduler:
        def schedule_end(self, giveaway_id, end_time):
            scheduled.append((giveaway_id, end_time))

    service.scheduler = RecordingScheduler()
    giveaway_id = create(service)

    assert scheduled == [(giveaway_id, clock() + HOUR_MS)]


# ========================================
# Queries
# ========================================

def test_get_all_filters_active(service, clock):
    first = create(service, message_id='m1', duration_ms=60_000)
    second = create(service, message_id='m2', duration_ms=HOUR_MS)
    ended = create(service, message_id='m3')
    create(service, message_id='m4', server_id='other-guild')
    asyncio.run(service.end_giveaway(ended))

    clock.advance(120_000)

    all_ids = [g['id'] for g in asyncio.run(service.get_all('guild-1'))]
    active_ids = [g['id'] for g in asyncio.run(service.get_all('guild-1', active_only=True))]

    assert sorted(all_ids) == sorted([first, second, ended])
    assert active_ids == [second]


def test_get_by_message_id(service):
    giveaway_id = create(service, message_id='987654321')
    assert asyncio.run(service.get_by_message_id(987654321))['id'] == giveaway_id

    with pytest.raises(NotFoundError):
        asyncio.run(service.get_by_message_id('nope'))


def test_get_unknown_giveaway(service):
    with pytest.raises(NotFoundError):
        asyncio.run(service.get_by_id(424242))


# ========================================
# Joining
# ========================================

def test_join_is_idempotent(service):
    giveaway_id = create(service)
    join(service, giveaway_id, 'A', 'B', 'A', 'A')

    assert asyncio.run(service.get_by_id(giveaway_id))['participants'] == ['A', 'B']


def test_join_unknown_giveaway(service):
    with pytest.raises(NotFoundError):
        asyncio.run(service.add_participant(999, 'A'))


def test_join_after_end_is_rejected(service):
    giveaway_id = create(service)
    join(service, giveaway_id, 'A')
    asyncio.run(service.end_giveaway(giveaway_id))

    with pytest.raises(ConflictError) as exc:
        asyncio.run(service.add_participant(giveaway_id, 'B'))
    assert exc.value.reason == ConflictError.CLOSED
    assert asyncio.run(service.get_by_id(giveaway_id))['participants'] == ['A']


def test_join_after_end_time_is_rejected(service, clock):
    giveaway_id = create(service, duration_ms=60_000)
    clock.advance(60_000)

    with pytest.raises(ConflictError) as exc:
        asyncio.run(service.add_participant(giveaway_id, 'A'))
    assert exc.value.reason == ConflictError.CLOSED


def test_join_requires_user_id(service):
    giveaway_id = create(service)
    with pytest.raises(ValidationError):
        asyncio.run(service.add_participant(giveaway_id, ''))


# ========================================
# Ending
# ========================================

def test_end_draws_subset_of_participants(service):
    """Two winners out of A, B, C"""
    giveaway_id = create(service, winners_count=2)
    join(service, giveaway_id, 'A', 'B', 'C')

    result = asyncio.run(service.end_giveaway(giveaway_id))

    assert result['ended'] is True
    assert len(result['winners']) == 2
    assert len(set(result['winners'])) == 2
    assert set(result['winners']) <= {'A', 'B', 'C'}

    stored = asyncio.run(service.get_by_id(giveaway_id))
    assert stored['ended'] is True
    assert stored['winners'] == result['winners']


def test_end_with_fewer_participants_than_winners(service):
    """Five winners wanted, only A and B joined"""
    giveaway_id = create(service, winners_count=5)
    join(service, giveaway_id, 'A', 'B')

    result = asyncio.run(service.end_giveaway(giveaway_id))

    assert sorted(result['winners']) == ['A', 'B']


def test_end_without_participants(service):
    giveaway_id = create(service, winners_count=3)

    result = asyncio.run(service.end_giveaway(giveaway_id))

    assert result['ended'] is True
    assert result['winners'] == []
    assert asyncio.run(service.get_by_id(giveaway_id))['ended'] is True


def test_end_twice_is_a_conflict(service):
    giveaway_id = create(service)
    join(service, giveaway_id, 'A', 'B')
    first = asyncio.run(service.end_giveaway(giveaway_id))

    with pytest.raises(ConflictError) as exc:
        asyncio.run(service.end_giveaway(giveaway_id))
    assert exc.value.reason == ConflictError.ALREADY_ENDED
    assert asyncio.run(service.get_by_id(giveaway_id))['winners'] == first['winners']


def test_end_unknown_giveaway(service):
    with pytest.raises(NotFoundError):
        asyncio.run(service.end_giveaway(31337))


def test_concurrent_end_keeps_first_result(service, store, monkeypatch):
    """Another process ends the giveaway between our read and our write"""
    giveaway_id = create(service)
    join(service, giveaway_id, 'A', 'B', 'C')
    stale = store.find_by_id(giveaway_id)

    assert store.update(giveaway_id, {'ended': True, 'winners': ['C']}, expected_ended=False)

    monkeypatch.setattr(store, 'find_by_id', lambda _id: dict(stale))
    with pytest.raises(ConflictError) as exc:
        asyncio.run(service.end_giveaway(giveaway_id))
    assert exc.value.reason == ConflictError.ALREADY_ENDED
    monkeypatch.undo()

    assert store.find_by_id(giveaway_id)['winners'] == ['C']


def test_conditional_update_reports_no_change(store, service):
    giveaway_id = create(service)

    assert store.update(giveaway_id, {'ended': True}, expected_ended=False) is True
    assert store.update(giveaway_id, {'ended': True}, expected_ended=False) is False
    assert store.update(giveaway_id, {'winners': ['X']}, expected_ended=True) is True


def test_end_with_forced_winner(service):
    giveaway_id = create(service, winners_count=3)
    join(service, giveaway_id, 'A', 'B')

    result = asyncio.run(service.end_giveaway_with_winner(giveaway_id, 'Z'))

    assert result['winners'] == ['Z']
    assert result['is_rigged'] is True
    stored = asyncio.run(service.get_by_id(giveaway_id))
    assert stored['ended'] is True
    assert stored['winners'] == ['Z']
    assert stored['is_rigged'] is True
    assert stored['forced_winner_id'] == 'Z'

    with pytest.raises(ConflictError):
        asyncio.run(service.end_giveaway(giveaway_id))


def test_forced_winner_on_ended_giveaway(service):
    giveaway_id = create(service)
    asyncio.run(service.end_giveaway(giveaway_id))

    with pytest.raises(ConflictError):
        asyncio.run(service.end_giveaway_with_winner(giveaway_id, 'Z'))


# ========================================
# Rerolls
# ========================================

def test_reroll_requires_ended(service):
    giveaway_id = create(service)
    join(service, giveaway_id, 'A')

    with pytest.raises(ConflictError) as exc:
        asyncio.run(service.reroll_winners(giveaway_id))
    assert exc.value.reason == ConflictError.NOT_ENDED


def test_reroll_redraws_from_participants(service):
    giveaway_id = create(service, winners_count=1)
    join(service, giveaway_id, 'A')
    asyncio.run(service.end_giveaway(giveaway_id))

    result = asyncio.run(service.reroll_winners(giveaway_id))

    assert result['winners'] == ['A']
    assert result['ended'] is True


def test_reroll_can_run_repeatedly(service):
    giveaway_id = create(service, winners_count=2)
    join(service, giveaway_id, 'A', 'B', 'C', 'D')
    asyncio.run(service.end_giveaway(giveaway_id))

    for _ in range(5):
        result = asyncio.run(service.reroll_winners(giveaway_id))
        assert len(result['winners']) == 2
        assert set(result['winners']) <= {'A', 'B', 'C', 'D'}
        assert asyncio.run(service.get_by_id(giveaway_id))['winners'] == result['winners']


def test_reroll_keeps_rigged_flag(service):
    giveaway_id = create(service)
    join(service, giveaway_id, 'A', 'B')
    asyncio.run(service.end_giveaway_with_winner(giveaway_id, 'Z'))

    result = asyncio.run(service.reroll_winners(giveaway_id))

    assert set(result['winners']) <= {'A', 'B'}
    stored = asyncio.run(service.get_by_id(giveaway_id))
    assert stored['is_rigged'] is True
    assert stored['forced_winner_id'] == 'Z'


def test_reroll_without_participants(service):
    giveaway_id = create(service)
    asyncio.run(service.end_giveaway(giveaway_id))

    assert asyncio.run(service.reroll_winners(giveaway_id))['winners'] == []


# ========================================
# Deletion
# ========================================

def test_delete(service):
    giveaway_id = create(service)

    assert asyncio.run(service.delete(giveaway_id)) is True
    with pytest.raises(NotFoundError):
        asyncio.run(service.get_by_id(giveaway_id))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete(giveaway_id))
