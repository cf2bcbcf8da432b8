"""Unit tests for CorrespondenceSet."""

from __future__ import annotations

import numpy as np
import pytest

from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.core.exceptions import ConfigurationInvalid
from camcalib.models.data_models import PatternGeometry


@pytest.fixture
def geometry() -> PatternGeometry:
    return PatternGeometry(columns=3, rows=2, square_size=10.0)


def _corners(offset: float) -> np.ndarray:
    return np.arange(12, dtype=np.float32).reshape(6, 2) + offset


def test_commit_in_order(geometry: PatternGeometry):
    """スロットは取得順にコミットされる。"""

    correspondences = CorrespondenceSet(geometry, 3)
    assert correspondences.committed_count == 0

    assert correspondences.commit(_corners(0)) == 0
    assert correspondences.commit(_corners(100)) == 1
    assert len(correspondences) == 2
    assert not correspondences.is_complete

    np.testing.assert_array_equal(correspondences.image_points()[1], _corners(100))
    assert correspondences.commit(_corners(200)) == 2
    assert correspondences.is_complete


def test_commit_accepts_opencv_shape(geometry: PatternGeometry):
    """(N, 1, 2) 形式も受け付ける。"""

    correspondences = CorrespondenceSet(geometry, 1)
    correspondences.commit(_corners(0).reshape(-1, 1, 2))
    assert correspondences.image_points()[0].shape == (6, 2)


def test_commit_wrong_length_leaves_slot_uncommitted(geometry: PatternGeometry):
    """点数が一致しない場合はコミットされない。"""

    correspondences = CorrespondenceSet(geometry, 2)
    with pytest.raises(ValueError, match="コーナー数"):
        correspondences.commit(np.zeros((5, 2), dtype=np.float32))

    assert correspondences.committed_count == 0


def test_commit_when_full(geometry: PatternGeometry):
    """すべてのスロットが埋まった後のコミットはエラー。"""

    correspondences = CorrespondenceSet(geometry, 1)
    correspondences.commit(_corners(0))
    with pytest.raises(RuntimeError):
        correspondences.commit(_corners(1))


def test_object_points_from_pattern(geometry: PatternGeometry):
    """ボード座標はパターンから生成される。"""

    correspondences = CorrespondenceSet(geometry, 2)
    correspondences.commit(_corners(0))
    board, corners = correspondences.entry(0)

    assert board.shape == (6, 3)
    assert tuple(board[4]) == (10.0, 10.0, 0.0)
    np.testing.assert_array_equal(corners, _corners(0))


def test_entry_uncommitted(geometry: PatternGeometry):
    correspondences = CorrespondenceSet(geometry, 2)
    with pytest.raises(IndexError):
        correspondences.entry(0)


def test_returned_arrays_are_copies(geometry: PatternGeometry):
    """取り出した配列を変更しても内部状態は変わらない。"""

    correspondences = CorrespondenceSet(geometry, 1)
    correspondences.commit(_corners(0))
    correspondences.image_points()[0][:] = -1

    np.testing.assert_array_equal(correspondences.image_points()[0], _corners(0))


@pytest.mark.parametrize("n_images", [0, -3, 2.5, True])
def test_invalid_image_count(geometry: PatternGeometry, n_images):
    with pytest.raises(ConfigurationInvalid):
        CorrespondenceSet(geometry, n_images)


def test_from_arrays_length_mismatch(geometry: PatternGeometry):
    with pytest.raises(ValueError, match="画像数"):
        CorrespondenceSet.from_arrays(geometry, [np.zeros((6, 3))], [])
