import numpy as np
import pytest

from wirewidth.histogram import Hist1D, Hist2D, SparseHist


def test_fill_adds_weight_and_squared_error():
    h = Hist1D([0.0, 1.0, 2.0, 3.0])
    assert h.fill(1.5, 2.0) == 1
    assert h.contents[1] == 2.0
    assert h.errors[1] == pytest.approx(2.0)
    assert h.integral() == 2.0


def test_fill_outside_axis_is_dropped():
    h = Hist1D([0.0, 1.0, 2.0, 3.0])
    assert h.fill(-0.5) is None
    assert h.fill(3.0) is None
    assert h.integral() == 0.0


def test_invalid_edges_rejected():
    with pytest.raises(ValueError):
        Hist1D([0.0])
    with pytest.raises(ValueError):
        Hist1D([0.0, 2.0, 1.0])


def test_set_bin_default_error_and_bad_index():
    h = Hist1D([0.0, 1.0, 2.0])
    h.set_bin(0, 9.0)
    assert h.errors[0] == pytest.approx(3.0)
    with pytest.raises(IndexError):
        h.set_bin(2, 1.0)


def test_mean_of_single_bin_is_its_center():
    h = Hist1D(np.linspace(0.0, 5.0, 6))
    h.set_bin(2, 4.0)
    assert h.mean() == pytest.approx(h.bin_centers()[2])
    assert h.std() == pytest.approx(0.0)


def test_symmetric_content_mean_and_std():
    h = Hist1D([0.0, 1.0, 2.0, 3.0])
    h.set_bin(0, 5.0)
    h.set_bin(2, 5.0)
    centers = h.bin_centers()
    assert h.mean() == pytest.approx(centers[1])
    assert h.std() == pytest.approx((centers[2] - centers[0]) / 2)


def test_empty_statistics_are_zero():
    h = Hist1D([0.0, 1.0, 2.0])
    assert h.mean() == 0.0
    assert h.std() == 0.0


def test_quantiles_of_flat_histogram():
    edges = np.linspace(0.0, 4.0, 5)
    h = Hist1D(edges)
    for i in range(4):
        h.set_bin(i, 1.0)
    result = h.quantiles([0.0, 0.5, 1.0])
    assert result == pytest.approx([edges[0], edges[2], edges[-1]])


def test_quantiles_of_empty_histogram_raise():
    with pytest.raises(ValueError):
        Hist1D([0.0, 1.0]).quantiles([0.5])


def test_scale_multiplies_contents_and_errors():
    h = Hist1D([0.0, 1.0, 2.0])
    h.set_bin(0, 4.0, 2.0)
    h.scale(-3.0)
    assert h.contents[0] == pytest.approx(-12.0)
    assert h.errors[0] == pytest.approx(6.0)


def test_clone_is_independent_and_reset_clears():
    h = Hist1D([0.0, 1.0, 2.0])
    h.fill(0.5, 3.0)
    copy = h.clone()
    h.reset()
    assert h.integral() == 0.0
    assert copy.contents[0] == 3.0
    assert np.all(h.sumw2 == 0.0)


def test_random_never_lands_in_empty_bins():
    h = Hist1D(np.linspace(0.0, 10.0, 11))
    h.set_bin(2, 1.0)
    h.set_bin(7, 3.0)
    draws = h.random(np.random.default_rng(1), 2000)
    in_two = (draws >= 2.0) & (draws < 3.0)
    in_seven = (draws >= 7.0) & (draws < 8.0)
    assert np.all(in_two | in_seven)
    assert in_seven.sum() > in_two.sum()


def test_random_is_reproducible_and_scalar():
    h = Hist1D([0.0, 1.0, 2.0])
    h.set_bin(1, 1.0)
    first = h.random(np.random.default_rng(5))
    second = h.random(np.random.default_rng(5))
    assert first == second
    assert 1.0 <= first < 2.0


def test_hist2d_fill_and_find_bin():
    h = Hist2D([0.0, 1.0, 2.0], [0.0, 10.0, 20.0, 30.0])
    assert h.fill(1.5, 25.0, 2.0) == (1, 2)
    assert h.find_bin(1.5, 25.0) == (1, 2)
    assert h.find_bin(2.5, 5.0) is None
    assert h.fill(-1.0, 5.0) is None
    assert h.contents[1, 2] == 2.0


def test_hist2d_projections_preserve_totals():
    h = Hist2D([0.0, 1.0, 2.0], [0.0, 1.0, 2.0, 3.0])
    h.fill(0.5, 0.5, 1.0)
    h.fill(0.5, 2.5, 2.0)
    h.fill(1.5, 1.5, 4.0)
    px = h.projection_x()
    py = h.projection_y()
    assert px.integral() == pytest.approx(h.contents.sum())
    assert py.integral() == pytest.approx(h.contents.sum())
    assert px.contents[0] == pytest.approx(h.contents[0].sum())
    assert py.sumw2[1] == pytest.approx(h.sumw2[:, 1].sum())
    assert np.array_equal(px.edges, h.xedges)


def test_sparse_projection_axes_and_content():
    h = SparseHist([4, 5, 2], [0.0, 0.0, 0.0], [4.0, 5.0, 2.0])
    h.fill([0.5, 1.5, 0.5])
    h.fill([3.5, 4.5, 1.5])
    h.fill([3.5, 4.5, 1.5])
    proj = h.projection(1, 0)
    assert np.allclose(proj.xedges, np.linspace(0.0, 4.0, 5))
    assert np.allclose(proj.yedges, np.linspace(0.0, 5.0, 6))
    assert proj.contents[0, 1] == 1.0
    assert proj.contents[3, 4] == 2.0


def test_sparse_range_selects_entries():
    h = SparseHist([4, 4, 4], [0.0, 0.0, 0.0], [4.0, 4.0, 4.0])
    h.fill([0.5, 0.5, 0.5])
    h.fill([0.5, 0.5, 2.5])
    h.set_range(2, 2.0, 3.0)
    proj = h.projection(1, 0)
    assert proj.contents.sum() == 1.0
    assert proj.contents[0, 0] == 1.0


def test_sparse_range_on_projected_axis_narrows_edges():
    h = SparseHist([4, 4], [0.0, 0.0], [4.0, 4.0])
    h.fill([0.5, 0.5])
    h.fill([2.5, 0.5])
    h.set_range(0, 2.0, 4.0)
    proj = h.projection(1, 0)
    assert np.allclose(proj.xedges, [2.0, 3.0, 4.0])
    assert proj.contents.sum() == 1.0


def test_sparse_errors():
    h = SparseHist([2, 2], [0.0, 0.0], [1.0, 1.0])
    with pytest.raises(ValueError):
        h.fill([0.5])
    with pytest.raises(ValueError):
        h.projection(0, 0)
    with pytest.raises(ValueError):
        h.set_range(0, 5.0, 6.0)