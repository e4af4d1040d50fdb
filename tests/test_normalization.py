import numpy as np
import pytest

from mtensor.memory import Tensor
from mtensor.normalization import (
    BatchNormalization,
    GroupNormalization,
    LayerNormalization,
)


def _t(values, requires_grad=False):
    return Tensor.from_array(values, requires_grad)


def _ones(n):
    return _t(np.ones(n, dtype=np.float32))


def _zeros(n):
    return _t(np.zeros(n, dtype=np.float32))


def _sample(shape, seed=0):
    return np.random.default_rng(seed).normal(size=shape).astype(np.float32) * 3 + 1


# ---------------------------------------------------------------- batch norm


def test_batch_norm_training_normalizes_channels():
    x = _sample((4, 3, 5))
    op = BatchNormalization(True, _zeros(3), _ones(3), 0.1)
    out = op.forward([_t(x), _ones(3), _zeros(3)]).numpy()
    assert out.shape == x.shape
    np.testing.assert_allclose(out.mean(axis=(0, 2)), np.zeros(3), atol=1e-5)
    np.testing.assert_allclose(out.var(axis=(0, 2)), np.ones(3), atol=1e-4)


def test_batch_norm_scale_and_shift_applied():
    x = _sample((6, 2))
    scale = _t([2.0, 3.0])
    shift = _t([5.0, -1.0])
    op = BatchNormalization(True, _zeros(2), _ones(2), 0.1)
    base = op.forward([_t(x), _ones(2), _zeros(2)]).numpy()
    out = op.forward([_t(x), scale, shift]).numpy()
    np.testing.assert_allclose(out, base * [2.0, 3.0] + [5.0, -1.0], atol=1e-5)


def test_batch_norm_inference_identity_with_unit_stats():
    x = _sample((2, 3, 2, 2))
    op = BatchNormalization(False, _zeros(3), _ones(3), 0.1)
    out = op.forward([_t(x), _ones(3), _zeros(3)])
    np.testing.assert_allclose(out.numpy(), x, atol=1e-5)
    assert out.requires_grad is False
    assert out.grad_fn is None


def test_batch_norm_inference_uses_running_stats():
    x = _sample((3, 2))
    mean = np.array([1.0, -2.0], dtype=np.float32)
    var = np.array([4.0, 9.0], dtype=np.float32)
    op = BatchNormalization(False, _t(mean), _t(var), 0.1)
    out = op.forward([_t(x), _ones(2), _zeros(2)]).numpy()
    np.testing.assert_allclose(out * np.sqrt(var) + mean, x, atol=1e-4)


def test_batch_norm_running_stats_update_when_grad_required():
    running_mean = _zeros(1)
    running_var = _zeros(1)
    op = BatchNormalization(True, running_mean, running_var, 0.5)
    out = op.forward([_t([[1.0], [3.0]], requires_grad=True), _ones(1), _zeros(1)])
    assert out.requires_grad is True
    assert running_mean.numpy()[0] == pytest.approx(1.0)
    assert running_var.numpy()[0] == pytest.approx(0.5)
    assert out.grad_fn.name.startswith("BatchNormalization")
    np.testing.assert_allclose(out.grad_fn.variance, [1.0], atol=1e-6)


def test_batch_norm_running_stats_untouched_without_grad():
    running_mean = _zeros(1)
    op = BatchNormalization(True, running_mean, _ones(1), 0.5)
    op.forward([_t([[1.0], [3.0]]), _ones(1), _zeros(1)])
    np.testing.assert_array_equal(running_mean.numpy(), np.zeros(1, dtype=np.float32))


def test_batch_norm_constructor_rejects_mismatched_stats():
    with pytest.raises(ValueError, match="running_mean and running_variance"):
        BatchNormalization(True, _zeros(2), _ones(3), 0.1)


def test_batch_norm_constructor_rejects_missing_stats():
    with pytest.raises(ValueError):
        BatchNormalization(True, None, _ones(3), 0.1)


def test_batch_norm_rejects_bad_rank():
    op = BatchNormalization(True, _zeros(2), _ones(2), 0.1)
    with pytest.raises(ValueError, match="BatchNormalization"):
        op.forward([_t(np.ones((2, 2, 2, 2, 2))), _ones(2), _zeros(2)])


def test_batch_norm_rejects_channel_mismatch():
    op = BatchNormalization(True, _zeros(2), _ones(2), 0.1)
    with pytest.raises(ValueError, match="channels"):
        op.forward([_t(np.ones((2, 3))), _ones(2), _zeros(2)])


def test_batch_norm_rejects_noncontiguous_scale():
    op = BatchNormalization(True, _zeros(2), _ones(2), 0.1)
    scale = Tensor(np.ones(2), (2,), (1,), 0, None, False, False)
    with pytest.raises(ValueError, match="contiguous"):
        op.forward([_t(np.ones((2, 2))), scale, _zeros(2)])


# ---------------------------------------------------------------- group norm


def test_group_norm_normalizes_each_group():
    x = _sample((2, 4, 3))
    op = GroupNormalization(2)
    out = op.forward([_t(x), _ones(4), _zeros(4)]).numpy()
    grouped = out.reshape(2, 2, -1)
    np.testing.assert_allclose(grouped.mean(axis=2), np.zeros((2, 2)), atol=1e-5)
    np.testing.assert_allclose(grouped.var(axis=2), np.ones((2, 2)), atol=1e-4)


def test_group_norm_single_group_matches_layer_norm_on_2d():
    x = _sample((3, 4))
    g = GroupNormalization(1).forward([_t(x), _ones(4), _zeros(4)]).numpy()
    ln = LayerNormalization().forward([_t(x), _ones(4), _zeros(4)]).numpy()
    np.testing.assert_allclose(g, ln, atol=1e-5)


def test_group_norm_records_stats_when_grad_required():
    x = _sample((2, 4))
    out = GroupNormalization(2).forward([_t(x, True), _ones(4), _zeros(4)])
    assert out.requires_grad is True
    assert out.grad_fn.groups == 2
    assert out.grad_fn.mean.shape == (2, 2)


@pytest.mark.parametrize("groups", [3, 8])
def test_group_norm_rejects_bad_groups(groups):
    op = GroupNormalization(groups)
    with pytest.raises(ValueError, match="GroupNormalization"):
        op.forward([_t(np.ones((2, 4))), _ones(4), _zeros(4)])


def test_group_norm_rejects_mismatched_scale_shift():
    op = GroupNormalization(2)
    with pytest.raises(ValueError, match="same shape"):
        op.forward([_t(np.ones((2, 4))), _ones(4), _zeros(3)])


# ---------------------------------------------------------------- layer norm


def test_layer_norm_normalizes_last_dim():
    x = _sample((2, 3, 5))
    out = LayerNormalization().forward([_t(x), _ones(5), _zeros(5)]).numpy()
    np.testing.assert_allclose(out.mean(axis=-1), np.zeros((2, 3)), atol=1e-5)
    np.testing.assert_allclose(out.var(axis=-1), np.ones((2, 3)), atol=1e-4)


def test_layer_norm_is_shift_invariant_in_input():
    x = _sample((2, 4))
    op = LayerNormalization()
    a = op.forward([_t(x), _ones(4), _zeros(4)]).numpy()
    b = op.forward([_t(x + 10.0), _ones(4), _zeros(4)]).numpy()
    np.testing.assert_allclose(a, b, atol=1e-4)


def test_layer_norm_handles_strided_input():
    x = _sample((4, 3))
    transposed = Tensor(x.reshape(-1), (3, 4), (1, 3), 0, None, False, False)
    out = LayerNormalization().forward([transposed, _ones(4), _zeros(4)]).numpy()
    expected = LayerNormalization().forward([_t(x.T), _ones(4), _zeros(4)]).numpy()
    np.testing.assert_allclose(out, expected, atol=1e-6)


def test_layer_norm_rejects_last_dim_mismatch():
    with pytest.raises(ValueError, match="last dim"):
        LayerNormalization().forward([_t(np.ones((2, 4))), _ones(3), _zeros(3)])


def test_layer_norm_rejects_missing_operands():
    with pytest.raises(ValueError, match="LayerNormalization"):
        LayerNormalization().forward([_t(np.ones((2, 4)))])


def test_layer_norm_grad_node_has_operands():
    x = _t(_sample((2, 3)))
    scale = _t(np.ones(3), True)
    out = LayerNormalization().forward([x, scale, _zeros(3)])
    assert out.requires_grad is True
    assert out.grad_fn.operands[1] is scale