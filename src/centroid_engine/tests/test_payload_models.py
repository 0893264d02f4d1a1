import pytest

from centroid_engine.src.adapters.base_payload import PayloadContainer
from centroid_engine.src.models.data_models import (
    CentroidCreate,
    KNNQuery,
    Payload,
    PayloadIn,
    map_payload_in_to_payload,
)


def test_payload_is_a_payload_container():
    payload = Payload(vector=[1.0, 2.0])

    assert isinstance(payload, PayloadContainer)
    assert payload.vec().tolist() == [1.0, 2.0]
    assert payload.id


def test_payload_without_ttl_never_expires():
    payload = Payload(vector=[1.0], created_at=0.0)

    assert payload.expired(now=1e12) is False


def test_payload_expires_once_ttl_elapsed():
    payload = Payload(vector=[1.0], created_at=100.0, ttl=10.0)

    assert payload.expired(now=109.9) is False
    assert payload.expired(now=110.0) is True


def test_payload_ttl_validation():
    with pytest.raises(ValueError):
        Payload(vector=[0.0], ttl=0)


@pytest.mark.parametrize("vector", [[], [float("nan")], [1.0, float("inf")]])
def test_payload_vector_validation(vector):
    with pytest.raises(ValueError):
        Payload(vector=vector)


def test_map_payload_in_applies_default_ttl():
    item = PayloadIn(id="p-1", vector=[0.5, 0.5], metadata={"source": "sensor"})

    payload = map_payload_in_to_payload(item, default_ttl=30.0)

    assert payload.id == "p-1"
    assert payload.ttl == 30.0
    assert payload.metadata == {"source": "sensor"}


def test_map_payload_in_keeps_explicit_ttl():
    payload = map_payload_in_to_payload(PayloadIn(vector=[1.0], ttl=5.0), default_ttl=30.0)

    assert payload.ttl == 5.0


def test_centroid_create_validation():
    with pytest.raises(ValueError):
        CentroidCreate(id="c1", vector=[0.0], metric="manhattan")
    with pytest.raises(ValueError):
        CentroidCreate(id="c1", vector=[0.0], init_capacity=-1)


def test_knn_query_defaults():
    query = KNNQuery(vector=[0.0, 0.0])

    assert query.k == 1
    assert query.drain is False
