import numpy as np
import pytest
from scipy import sparse

from manifold_embedding_toolkit.callbacks import MatrixCallbacks
from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.eigen import EigenMethod, EigenMode, EigenSolver
from manifold_embedding_toolkit.embedding import EmbeddingRun, EmbeddingState, embed
from manifold_embedding_toolkit.errors import (
    EmbeddingCancelledError,
    MissedParameterError,
    NotEnoughMemoryError,
    UnsupportedMethodError,
    WrongParameterTypeError,
    WrongParameterValueError,
)
from manifold_embedding_toolkit.methods import Method, describe
from manifold_embedding_toolkit.neighbors import NeighborsMethod
from manifold_embedding_toolkit.parameters import Option, ParametersMap
from manifold_embedding_toolkit.registry import ReducerRegistry

GENERALIZED = [method for method in Method if describe(method).is_generalized_eigenproblem]


class _CountingCallbacks:
    """Callbacks over a data matrix that count their evaluations."""

    def __init__(self, data: np.ndarray) -> None:
        self.inner = MatrixCallbacks(data)
        self.calls = 0

    def kernel(self, i: int, j: int) -> float:
        self.calls += 1
        return self.inner.kernel(i, j)

    def distance(self, i: int, j: int) -> float:
        self.calls += 1
        return self.inner.distance(i, j)

    def features(self, i: int) -> np.ndarray:
        self.calls += 1
        return self.inner.features(i)


def _data(n: int = 30) -> np.ndarray:
    return np.random.default_rng(4).normal(size=(n, 3))


def _parameters(method: Method, **options: object) -> ParametersMap:
    values: dict[Option | str, object] = {
        Option.METHOD: method,
        Option.TARGET_DIMENSION: 3 if method is Method.PASS_THRU else 2,
        Option.CURRENT_DIMENSION: 3,
    }
    if method is Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING:
        values[Option.SNE_PERPLEXITY] = 5.0
    values.update(options)
    return ParametersMap(values)


def _run(n: int, parameters: ParametersMap, callbacks: _CountingCallbacks):
    return embed(
        n,
        parameters,
        kernel=callbacks.kernel,
        distance=callbacks.distance,
        features=callbacks.features,
    )


@pytest.fixture
def solver_calls(monkeypatch) -> list[str]:
    calls: list[str] = []
    original = EigenSolver.solve

    def _counting_solve(self, *args, **kwargs):
        calls.append(self.method.value)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(EigenSolver, "solve", _counting_solve)
    return calls


@pytest.mark.parametrize("method", list(Method))
def test_empty_data_gives_an_empty_embedding(method: Method) -> None:
    callbacks = _CountingCallbacks(np.empty((0, 3)))

    result = _run(0, _parameters(method), callbacks)

    d = 3 if method is Method.PASS_THRU else 2
    assert result.embedding.shape == (0, d)
    assert result.eigenvalues.size == 0
    assert callbacks.calls == 0


def test_missing_method_is_reported() -> None:
    parameters = ParametersMap({Option.TARGET_DIMENSION: 2})

    with pytest.raises(MissedParameterError):
        _run(10, parameters, _CountingCallbacks(_data(10)))


def test_missing_target_dimension_is_reported() -> None:
    parameters = ParametersMap({Option.METHOD: Method.ISOMAP})

    with pytest.raises(MissedParameterError):
        _run(10, parameters, _CountingCallbacks(_data(10)))


def test_missing_required_callback_is_reported_before_any_work() -> None:
    callbacks = _CountingCallbacks(_data())

    with pytest.raises(MissedParameterError, match="kernel"):
        embed(
            30,
            _parameters(Method.KERNEL_LOCALLY_LINEAR_EMBEDDING),
            distance=callbacks.distance,
        )
    assert callbacks.calls == 0


@pytest.mark.parametrize(
    ("option", "value"),
    [
        (Option.TARGET_DIMENSION, 2.0),
        (Option.N_NEIGHBORS, True),
        (Option.CURRENT_DIMENSION, 3.0),
        (Option.EIGEN_METHOD, "dense"),
        (Option.CANCEL_FUNCTION, None),
    ],
)
def test_wrong_type_options_are_rejected(option: Option, value: object) -> None:
    parameters = _parameters(Method.LOCALITY_PRESERVING_PROJECTIONS, **{option: value})

    with pytest.raises(WrongParameterTypeError):
        _run(30, parameters, _CountingCallbacks(_data()))


def test_wrong_type_method_options_are_rejected_when_read() -> None:
    parameters = _parameters(Method.DIFFUSION_MAP, **{Option.GAUSSIAN_KERNEL_WIDTH: 1})

    with pytest.raises(WrongParameterTypeError):
        _run(30, parameters, _CountingCallbacks(_data()))


@pytest.mark.parametrize(
    ("option", "value"),
    [
        (Option.TARGET_DIMENSION, -2),
        (Option.TARGET_DIMENSION, 0),
        (Option.CURRENT_DIMENSION, -3),
        (Option.N_NEIGHBORS, -1),
    ],
)
def test_negative_dimensions_are_rejected(option: Option, value: int) -> None:
    parameters = _parameters(Method.NEIGHBORHOOD_PRESERVING_EMBEDDING, **{option: value})

    with pytest.raises(WrongParameterValueError):
        _run(30, parameters, _CountingCallbacks(_data()))


def test_neighbor_count_must_be_below_the_number_of_points() -> None:
    parameters = _parameters(Method.ISOMAP, **{Option.N_NEIGHBORS: 30})

    with pytest.raises(WrongParameterValueError, match="n_neighbors"):
        _run(30, parameters, _CountingCallbacks(_data()))


def test_target_dimension_cannot_exceed_the_number_of_points() -> None:
    parameters = _parameters(Method.MULTIDIMENSIONAL_SCALING, **{Option.TARGET_DIMENSION: 5})

    with pytest.raises(WrongParameterValueError):
        _run(4, parameters, _CountingCallbacks(_data(4)))


def test_linear_methods_cannot_raise_the_dimension() -> None:
    parameters = _parameters(Method.PCA, **{Option.TARGET_DIMENSION: 4})

    with pytest.raises(WrongParameterValueError):
        _run(30, parameters, _CountingCallbacks(_data()))


def test_passthru_keeps_the_dimension() -> None:
    parameters = _parameters(Method.PASS_THRU, **{Option.TARGET_DIMENSION: 2})

    with pytest.raises(WrongParameterValueError):
        _run(30, parameters, _CountingCallbacks(_data()))


@pytest.mark.parametrize("method", list(Method))
def test_cancellation_stops_every_method_before_any_work(
    method: Method, solver_calls: list[str]
) -> None:
    callbacks = _CountingCallbacks(_data())
    parameters = _parameters(method, **{Option.CANCEL_FUNCTION: lambda: True})

    with pytest.raises(EmbeddingCancelledError):
        _run(30, parameters, callbacks)
    assert solver_calls == []
    assert callbacks.calls == 0


@pytest.mark.parametrize("eigen_method", [EigenMethod.RANDOMIZED, EigenMethod.DENSE])
@pytest.mark.parametrize("method", GENERALIZED)
def test_generalized_problems_reject_backends_without_support(
    method: Method, eigen_method: EigenMethod, solver_calls: list[str]
) -> None:
    callbacks = _CountingCallbacks(_data())
    parameters = _parameters(method, **{Option.EIGEN_METHOD: eigen_method})

    with pytest.raises(UnsupportedMethodError):
        _run(30, parameters, callbacks)
    assert solver_calls == []
    assert callbacks.calls == 0


def test_oversized_dense_matrix_fails_before_allocation() -> None:
    callbacks = _CountingCallbacks(_data())
    parameters = _parameters(
        Method.MULTIDIMENSIONAL_SCALING, **{Option.MEMORY_LIMIT: 30 * 30 * 8 - 1}
    )

    with pytest.raises(NotEnoughMemoryError):
        _run(30, parameters, callbacks)
    assert callbacks.calls == 0


@pytest.mark.parametrize(
    "method",
    [
        Method.KERNEL_LOCALLY_LINEAR_EMBEDDING,
        Method.ISOMAP,
        Method.LAPLACIAN_EIGENMAPS,
    ],
)
def test_dense_solver_and_brute_force_are_deterministic(method: Method) -> None:
    options = {
        Option.EIGEN_METHOD: EigenMethod.DENSE,
        Option.NEIGHBORS_METHOD: NeighborsMethod.BRUTE_FORCE,
    }
    if method is Method.LAPLACIAN_EIGENMAPS:
        options[Option.EIGEN_METHOD] = EigenMethod.ARPACK

    first = _run(30, _parameters(method, **options), _CountingCallbacks(_data()))
    second = _run(30, _parameters(method, **options), _CountingCallbacks(_data()))

    np.testing.assert_array_equal(first.embedding, second.embedding)
    np.testing.assert_array_equal(first.eigenvalues, second.eigenvalues)


def test_solver_is_called_once_per_eigenproblem(solver_calls: list[str]) -> None:
    _run(
        30,
        _parameters(Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT),
        _CountingCallbacks(_data()),
    )

    assert solver_calls == ["arpack"]


def test_run_state_reaches_done() -> None:
    callbacks = MatrixCallbacks(_data())
    run = EmbeddingRun(
        30,
        _parameters(Method.PCA),
        features=callbacks.features,
    )
    assert run.state is EmbeddingState.VALIDATING

    result = run.run()

    assert run.state is EmbeddingState.DONE
    assert run.eigen_method is EigenMethod.ARPACK
    assert run.context.eigen_calls == 1
    assert result.embedding.shape == (30, 2)


def test_run_state_records_failures() -> None:
    run = EmbeddingRun(30, _parameters(Method.PCA))

    with pytest.raises(MissedParameterError):
        run.run()
    assert run.state is EmbeddingState.FAILED


def test_methods_without_a_registered_reducer_are_unsupported() -> None:
    callbacks = MatrixCallbacks(_data())

    with pytest.raises(UnsupportedMethodError, match="No reducer registered"):
        embed(
            30,
            _parameters(Method.PCA),
            features=callbacks.features,
            registry=ReducerRegistry(),
        )


def test_negative_number_of_points_is_rejected() -> None:
    run = EmbeddingRun(-1, _parameters(Method.PCA))

    with pytest.raises(WrongParameterValueError):
        run.run()
    assert run.state is EmbeddingState.FAILED


@pytest.mark.parametrize(
    "method",
    [
        Method.KERNEL_LOCALLY_LINEAR_EMBEDDING,
        Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT,
        Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING,
    ],
)
def test_dense_solver_respects_the_memory_limit_for_sparse_alignments(
    method: Method, solver_calls: list[str]
) -> None:
    callbacks = _CountingCallbacks(_data())
    parameters = _parameters(
        method,
        **{
            Option.EIGEN_METHOD: EigenMethod.DENSE,
            Option.MEMORY_LIMIT: 30 * 30 * 8 - 1,
        },
    )

    with pytest.raises(NotEnoughMemoryError):
        _run(30, parameters, callbacks)
    assert solver_calls == []
    assert callbacks.calls == 0


@pytest.mark.parametrize(
    ("method", "eigen_method"),
    [
        (Method.PCA, EigenMethod.ARPACK),
        (Method.LOCALITY_PRESERVING_PROJECTIONS, EigenMethod.ARPACK),
        (Method.NEIGHBORHOOD_PRESERVING_EMBEDDING, EigenMethod.ARPACK),
        (Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT, EigenMethod.ARPACK),
    ],
)
def test_full_dimensional_linear_problems_are_rejected_while_validating(
    method: Method, eigen_method: EigenMethod
) -> None:
    callbacks = _CountingCallbacks(_data())
    parameters = _parameters(
        method, **{Option.TARGET_DIMENSION: 3, Option.EIGEN_METHOD: eigen_method}
    )
    run = EmbeddingRun(
        30,
        parameters,
        kernel=callbacks.kernel,
        distance=callbacks.distance,
        features=callbacks.features,
    )

    with pytest.raises(WrongParameterValueError, match="eigenpairs"):
        run.run()
    assert run.context is None
    assert callbacks.calls == 0


def test_full_dimensional_pca_is_served_by_the_dense_solver() -> None:
    callbacks = MatrixCallbacks(_data())

    result = embed(
        30,
        _parameters(
            Method.PCA,
            **{Option.TARGET_DIMENSION: 3, Option.EIGEN_METHOD: EigenMethod.DENSE},
        ),
        features=callbacks.features,
    )

    assert result.embedding.shape == (30, 3)


@pytest.mark.parametrize("eigen_method", [EigenMethod.DENSE, EigenMethod.ARPACK])
@pytest.mark.parametrize(
    "method",
    [
        Method.DIFFUSION_MAP,
        Method.KERNEL_LOCALLY_LINEAR_EMBEDDING,
        Method.LAPLACIAN_EIGENMAPS,
    ],
)
def test_methods_skipping_an_eigenpair_need_fewer_dimensions_than_points(
    method: Method, eigen_method: EigenMethod, solver_calls: list[str]
) -> None:
    callbacks = _CountingCallbacks(_data(5))
    parameters = _parameters(
        method,
        **{
            Option.TARGET_DIMENSION: 5,
            Option.N_NEIGHBORS: 4,
            Option.EIGEN_METHOD: eigen_method,
        },
    )

    with pytest.raises(WrongParameterValueError, match="eigenpairs"):
        _run(5, parameters, callbacks)
    assert solver_calls == []
    assert callbacks.calls == 0


def test_arpack_needs_one_spare_eigenpair_for_scaling() -> None:
    parameters = _parameters(Method.MULTIDIMENSIONAL_SCALING, **{Option.TARGET_DIMENSION: 4})

    with pytest.raises(WrongParameterValueError, match="arpack"):
        _run(4, parameters, _CountingCallbacks(_data(4)))


@pytest.mark.parametrize(
    ("method", "n_neighbors"),
    [
        (Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT, 1),
        (Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT, 1),
        (Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING, 5),
    ],
)
def test_too_few_neighbors_fail_before_cancellation_is_polled(
    method: Method, n_neighbors: int
) -> None:
    polls = {"count": 0}

    def _cancel() -> bool:
        polls["count"] += 1
        return False

    callbacks = _CountingCallbacks(_data())
    run = EmbeddingRun(
        30,
        _parameters(
            method, **{Option.N_NEIGHBORS: n_neighbors, Option.CANCEL_FUNCTION: _cancel}
        ),
        kernel=callbacks.kernel,
        features=callbacks.features,
    )

    with pytest.raises(WrongParameterValueError, match="neighbors"):
        run.run()
    assert run.state is EmbeddingState.FAILED
    assert polls["count"] == 0
    assert callbacks.calls == 0


def test_tsne_perplexity_is_checked_while_validating() -> None:
    callbacks = _CountingCallbacks(_data())
    run = EmbeddingRun(
        30,
        _parameters(
            Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING,
            **{Option.SNE_PERPLEXITY: 10.0},
        ),
        features=callbacks.features,
    )

    with pytest.raises(WrongParameterValueError, match="sne_perplexity"):
        run.run()
    assert run.context is None
    assert callbacks.calls == 0


def test_context_checks_memory_before_densifying_a_sparse_operator() -> None:
    method = Method.KERNEL_LOCALLY_LINEAR_EMBEDDING
    context = EmbeddingContext(
        n=30,
        parameters=_parameters(method, **{Option.MEMORY_LIMIT: 30 * 30 * 8 - 1}),
        descriptor=describe(method),
        target_dimension=2,
        eigen_method=EigenMethod.DENSE,
        neighbors_method=NeighborsMethod.BRUTE_FORCE,
    )

    with pytest.raises(NotEnoughMemoryError):
        context.eigen(sparse.identity(30, format="csr"), EigenMode.SMALLEST, skip=1)
    assert context.eigen_calls == 0
