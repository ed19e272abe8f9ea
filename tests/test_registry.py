import pytest

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.errors import UnsupportedMethodError
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers.projection import PCA
from manifold_embedding_toolkit.registry import ReducerRegistry, default_registry
from manifold_embedding_toolkit.result import EmbeddingResult


def test_registry_discovers_every_builtin_reducer() -> None:
    registry = ReducerRegistry()
    registry.discover_modules()

    assert set(registry.list_methods()) == set(Method)
    assert registry.get(Method.PCA) is PCA


def test_default_registry_is_built_once() -> None:
    assert default_registry() is default_registry()
    assert default_registry().has(Method.ISOMAP)


def test_registering_replaces_the_reducer_for_a_method() -> None:
    class _ConstantPCA(Reducer):
        """Replacement PCA used only to check registration order."""

        method = Method.PCA

        def embed(self, context: EmbeddingContext) -> EmbeddingResult:
            raise NotImplementedError

    registry = ReducerRegistry()
    registry.discover_modules()
    registry.register(_ConstantPCA)

    assert registry.get(Method.PCA) is _ConstantPCA


def test_unknown_methods_are_unsupported() -> None:
    with pytest.raises(UnsupportedMethodError):
        ReducerRegistry().get(Method.PCA)


def test_describe_reports_the_method_traits() -> None:
    payload = PCA.describe()

    assert payload["name"] == "pca"
    assert payload["description"].startswith("Principal component analysis")
    assert payload["needs_feature_vectors"] is True
    assert payload["is_linear"] is True
