"""Tests for the batched vertex streams."""

import math

import numpy as np
import pytest

from geometric_interior.engine.accumulator import FACE_ATTRS, BatchAccumulator
from geometric_interior.errors import RenderFailure

TRI = np.array([[0.0, 0, 0], [1, 0, 0], [0, 1, 0]])


def _add_triangle(acc: BatchAccumulator, pos=TRI, norm=(0.0, 0.0, 1.0), alpha=0.5):
    acc.add_faces(
        pos=pos, norm=norm, uv=[[0, 0], [1, 0], [0.5, 1]], alpha=alpha,
        color=(0.2, 0.4, 0.6), opacity=0.1, noise_scale=8.0, noise_strength=0.3,
        crack_extend=1.0, fold_delay=0.0, fold_origin=(0.0, 0.0, 0.0),
    )


class TestBatchAccumulator:
    def test_empty(self):
        faces, edges = BatchAccumulator().finalize()
        assert faces.vertex_count == 0
        assert edges.segment_count == 0
        assert faces.pos.shape == (0, 3)

    def test_attributes_broadcast(self):
        acc = BatchAccumulator()
        _add_triangle(acc)
        faces, _ = acc.finalize()
        assert faces.triangle_count == 1
        for name, width in FACE_ATTRS.items():
            arr = getattr(faces, name)
            assert arr.dtype == np.float32
            assert arr.shape == ((3,) if width == 1 else (3, width))

    def test_streams_are_read_only(self):
        acc = BatchAccumulator()
        _add_triangle(acc)
        faces, _ = acc.finalize()
        with pytest.raises(ValueError):
            faces.pos[0, 0] = 5.0

    def test_unit_attributes_clamped(self):
        acc = BatchAccumulator()
        _add_triangle(acc, alpha=3.0)
        faces, _ = acc.finalize()
        assert faces.alpha.max() == 1.0

    def test_winding_matches_normal(self):
        acc = BatchAccumulator()
        _add_triangle(acc, norm=(0.0, 0.0, -1.0))
        faces, _ = acc.finalize()
        p = faces.pos.astype(np.float64)
        geo = np.cross(p[1] - p[0], p[2] - p[0])
        assert geo @ faces.norm[0] > 0
        # The swapped vertices carry their uvs with them.
        assert np.allclose(faces.uv[1], [0.5, 1])

    def test_partial_triangle_rejected(self):
        with pytest.raises(ValueError):
            _add_triangle(BatchAccumulator(), pos=TRI[:2])

    def test_odd_edge_chunk_rejected(self):
        with pytest.raises(ValueError):
            BatchAccumulator().add_edges(TRI, 1.0, (1, 1, 1), 1.0, 0.0, (0, 0, 0))

    def test_non_finite_raises(self):
        acc = BatchAccumulator()
        _add_triangle(acc, pos=np.array([[0.0, 0, 0], [math.nan, 0, 0], [0, 1, 0]]))
        with pytest.raises(RenderFailure):
            acc.finalize()

    def test_edges(self):
        acc = BatchAccumulator()
        acc.add_edges(TRI[:2], alpha=[0.2, 0.4], color=(1, 0, 0), opacity=0.5, fold_delay=0.1, fold_origin=(0, 0, 0))
        _, edges = acc.finalize()
        assert edges.segment_count == 1
        assert np.allclose(edges.alpha, [0.2, 0.4])


class TestPadding:
    def test_pads_with_invisible_rows_on_template_geometry(self):
        small, big = BatchAccumulator(), BatchAccumulator()
        _add_triangle(small)
        _add_triangle(big)
        _add_triangle(big, pos=TRI + 5.0)
        small_faces, _ = small.finalize()
        big_faces, _ = big.finalize()

        padded = small_faces.padded(6, big_faces)
        assert padded.vertex_count == 6
        assert np.allclose(padded.pos[3:], big_faces.pos[3:])
        assert (padded.alpha[3:] == 0).all()
        assert (padded.opacity[3:] == 0).all()
        assert np.allclose(padded.pos[:3], small_faces.pos)

    def test_no_template_pads_with_zeros(self):
        acc = BatchAccumulator()
        _add_triangle(acc)
        faces, _ = acc.finalize()
        padded = faces.padded(6)
        assert np.allclose(padded.pos[3:], 0.0)

    def test_never_shrinks(self):
        acc = BatchAccumulator()
        _add_triangle(acc)
        faces, _ = acc.finalize()
        assert faces.padded(1) is faces
