from speedsanta.backend.identifiers import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, generate_gift_id, generate_room_id


def test_generate_room_id_uses_readable_alphabet() -> None:
    room_id = generate_room_id()

    assert len(room_id) == ROOM_CODE_LENGTH
    assert set(room_id) <= set(ROOM_CODE_ALPHABET)
    assert not set(room_id) & {"0", "O", "1", "I"}


def test_generate_room_id_returns_random_values() -> None:
    assert len({generate_room_id() for _ in range(20)}) > 1


def test_generate_gift_id_sorts_in_settlement_order() -> None:
    first = generate_gift_id(1_700_000_000_000, 9)
    second = generate_gift_id(1_700_000_000_000, 10)
    later = generate_gift_id(1_700_000_000_500, 11)

    assert first == "1700000000000-000009"
    assert sorted([later, second, first]) == [first, second, later]
