import numpy as np
import pytest

from manifold_embedding_toolkit.callbacks import (
    GaussianKernel,
    LinearKernel,
    MatrixCallbacks,
)


def test_matrix_callbacks_share_one_matrix() -> None:
    callbacks = MatrixCallbacks([[0, 0], [3, 4]], kernel_name="gaussian", width=25.0)

    assert len(callbacks) == 2
    assert callbacks.features.dimension == 2
    np.testing.assert_array_equal(callbacks.features(1), [3.0, 4.0])
    assert callbacks.distance(0, 1) == pytest.approx(5.0)
    assert isinstance(callbacks.kernel, GaussianKernel)
    assert callbacks.kernel(0, 1) == pytest.approx(np.exp(-1.0))
    assert callbacks.kernel(1, 1) == pytest.approx(1.0)


def test_linear_kernel_is_the_dot_product() -> None:
    callbacks = MatrixCallbacks(np.array([[1.0, 2.0], [3.0, 4.0]]))

    assert isinstance(callbacks.kernel, LinearKernel)
    assert callbacks.kernel(0, 1) == pytest.approx(11.0)


@pytest.mark.parametrize(
    ("data", "kernel_name"),
    [([1.0, 2.0], "linear"), ([[1.0]], "polynomial")],
)
def test_invalid_callback_inputs_are_rejected(data: list, kernel_name: str) -> None:
    with pytest.raises(ValueError):
        MatrixCallbacks(data, kernel_name=kernel_name)
