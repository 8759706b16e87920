"""Tests for the rotation encodings and the Transform value type."""

import numpy as np
import pytest

from projector_aligner.transform import (
    CARDINAL_ROTATIONS,
    IDENTITY_ROTATION,
    ROTATION_CODES,
    Transform,
    cardinal_rotation_code,
    decode_rotation,
    encode_rotation,
    rotation_matrix,
    to_local_frame,
)


def test_every_rotation_code_round_trips() -> None:
    for code in range(ROTATION_CODES):
        turns = decode_rotation(code)
        assert all(-2 <= t <= 1 for t in turns)
        assert encode_rotation(turns) == code


def test_identity_code_decodes_to_no_turns() -> None:
    assert IDENTITY_ROTATION == 42
    assert decode_rotation(IDENTITY_ROTATION) == (0, 0, 0)
    assert decode_rotation(0) == (-2, -2, -2)
    assert decode_rotation(63) == (1, 1, 1)


@pytest.mark.parametrize("code", [-1, 64, 100])
def test_decode_rejects_codes_out_of_range(code: int) -> None:
    with pytest.raises(ValueError):
        decode_rotation(code)


def test_encode_wraps_turns_modulo_four() -> None:
    assert encode_rotation((2, 0, 0)) == encode_rotation((-2, 0, 0))
    assert encode_rotation((4, 5, -3)) == encode_rotation((0, 1, 1))


def test_cardinal_table_covers_the_24_proper_rotations() -> None:
    assert len(CARDINAL_ROTATIONS) == 24
    matrices = [rotation_matrix(turns) for turns in CARDINAL_ROTATIONS]
    assert len({m.tobytes() for m in matrices}) == 24
    for matrix in matrices:
        assert round(float(np.linalg.det(matrix))) == 1
        # signed permutation: one non-zero per row and column
        assert (np.abs(matrix).sum(axis=0) == 1).all()
        assert (np.abs(matrix).sum(axis=1) == 1).all()


def test_cardinal_codes_are_valid_flat_codes() -> None:
    codes = [cardinal_rotation_code(i) for i in range(len(CARDINAL_ROTATIONS))]
    assert codes[0] == IDENTITY_ROTATION
    assert all(0 <= code < ROTATION_CODES for code in codes)
    assert len(set(codes)) == 24


def test_quarter_turn_about_z_maps_x_onto_y() -> None:
    matrix = rotation_matrix((0, 0, 1))
    assert matrix.dtype.kind == "i"
    np.testing.assert_array_equal(matrix @ np.array([1, 0, 0]), [0, 1, 0])


def test_local_frame_subtracts_origin_and_undoes_orientation() -> None:
    orientation = rotation_matrix((0, 0, 1))
    local = to_local_frame([(5, 6, 7), (5, 7, 7)], (5, 6, 7), orientation)
    np.testing.assert_array_equal(local, [[0, 0, 0], [1, 0, 0]])


def test_transform_moves_return_new_values() -> None:
    start = Transform()
    shifted = start.shifted(2, -1)
    turned = start.turned(0, 1)

    assert start == Transform((0, 0, 0), IDENTITY_ROTATION)
    assert shifted.offset == (0, 0, -1)
    assert shifted.rotation == IDENTITY_ROTATION
    assert turned.offset == (0, 0, 0)
    assert turned.turns == (1, 0, 0)
    assert turned.turned(0, 1).turns == (-2, 0, 0)


def test_transform_validates_and_formats() -> None:
    with pytest.raises(ValueError):
        Transform((0, 0, 0), 64)
    with pytest.raises(ValueError):
        Transform((0, 0), 0)
    assert str(Transform((1, 0, -2), encode_rotation((1, 0, 0)))) == (
        "offset=(1, 0, -2) rotation=(90, 0, 0)"
    )
