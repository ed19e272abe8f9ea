import pytest

from manifold_embedding_toolkit.methods import (
    METHOD_ALIASES,
    Method,
    describe,
    list_descriptors,
)


def test_every_method_has_a_descriptor_and_aliases() -> None:
    descriptors = list_descriptors()

    assert [descriptor.method for descriptor in descriptors] == list(Method)
    assert set(METHOD_ALIASES) == set(Method)


def test_descriptor_traits() -> None:
    klle = describe(Method.KERNEL_LOCALLY_LINEAR_EMBEDDING)
    assert klle.needs_kernel and klle.needs_neighbors
    assert not klle.needs_distance and not klle.is_generalized_eigenproblem

    lpp = describe(Method.LOCALITY_PRESERVING_PROJECTIONS)
    assert lpp.needs_distance and lpp.needs_feature_vectors
    assert lpp.is_generalized_eigenproblem and lpp.is_linear

    assert describe(Method.LANDMARK_ISOMAP).supports_landmarks
    assert describe(Method.PASS_THRU).needs_feature_vectors


def test_describe_rejects_unknown_identifiers() -> None:
    with pytest.raises(KeyError):
        describe("isomap")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("name", "method"),
    [
        ("lle", Method.KERNEL_LOCALLY_LINEAR_EMBEDDING),
        ("t-sne", Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING),
        ("l-isomap", Method.LANDMARK_ISOMAP),
        ("Diffusion-Map", Method.DIFFUSION_MAP),
        ("kernel_pca", Method.KERNEL_PCA),
        (" passthru ", Method.PASS_THRU),
    ],
)
def test_from_name_accepts_full_names_and_aliases(name: str, method: Method) -> None:
    assert Method.from_name(name) is method


def test_from_name_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Unknown method"):
        Method.from_name("umap")


def test_descriptor_as_dict_is_json_friendly() -> None:
    payload = describe(Method.DIFFUSION_MAP).as_dict()

    assert payload["method"] == "diffusion_map"
    assert payload["aliases"] == ["dm"]
    assert payload["needs_distance"] is True
