import pytest

from centroid_engine.src.adapters.search_strategies import build_search_strategies
from centroid_engine.src.models.data_models import Payload
from centroid_engine.src.services.centroid_service import CentroidService


def make_service(**config):
    service = CentroidService(**config)
    service.create_centroid("left", [-5.0, 0.0])
    service.create_centroid("right", [5.0, 0.0])
    return service


def test_create_centroid_rejects_duplicate_id():
    service = make_service()

    with pytest.raises(ValueError):
        service.create_centroid("left", [0.0, 0.0])


def test_create_centroid_with_unknown_metric_fails_softly():
    service = CentroidService()

    assert service.create_centroid("c", [0.0], metric="manhattan") is None
    assert service.list_states() == []


def test_strategy_factory_is_used_for_new_centroids():
    requested = []

    def factory(metric):
        requested.append(metric)
        return build_search_strategies("cosine")

    service = CentroidService(strategy_factory=factory, metric="cosine")
    service.create_centroid("c", [1.0, 0.0])

    assert requested == ["cosine"]
    assert service.list_states()[0].metric == "cosine"


def test_assign_payload_picks_nearest_centroid():
    service = make_service()

    assigned = service.assign_payload(Payload(vector=[4.0, 1.0]))

    assert assigned == "right"
    assert service.get_centroid("right").len_dp() == 1


def test_assign_payload_without_matching_dimension_returns_none():
    service = make_service()

    assert service.assign_payload(Payload(vector=[1.0, 2.0, 3.0])) is None


def test_assign_payload_skips_expired_payload():
    service = make_service()

    assert service.assign_payload(Payload(vector=[1.0, 0.0], created_at=0.0, ttl=1.0)) is None


def test_distribute_moves_stray_payloads_and_keeps_count():
    # Arrange
    service = make_service()
    for x in (-5.5, -4.5, 4.0, 6.0):
        service.add_payload("left", Payload(vector=[x, 0.0]))

    # Act
    sizes = service.distribute("left", 2)

    # Assert
    assert sizes == {"left": 2, "right": 2}


def test_unknown_centroid_raises_key_error():
    service = make_service()

    with pytest.raises(KeyError):
        service.add_payload("missing", Payload(vector=[0.0, 0.0]))
    with pytest.raises(KeyError):
        service.distribute("missing", 1)


def test_expire_all_reports_removed_counts():
    service = make_service()
    service.add_payload("left", Payload(vector=[-5.0, 0.0]))
    stale = Payload(vector=[-5.0, 1.0], ttl=60.0)
    service.add_payload("left", stale)
    stale.created_at -= 120.0

    removed = service.expire_all()

    assert removed == {"left": 1, "right": 0}


def test_move_vectors_reports_empty_centroids():
    service = make_service()
    service.add_payload("left", Payload(vector=[-1.0, 1.0]))
    service.add_payload("left", Payload(vector=[-3.0, 3.0]))

    moved = service.move_vectors()

    assert moved == {"left": True, "right": False}
    assert service.get_centroid("left").vec().tolist() == pytest.approx([-2.0, 2.0])
    assert service.get_centroid("right").vec().tolist() == [5.0, 0.0]


def test_knn_lookup_with_drain():
    service = make_service()
    near = Payload(vector=[-5.0, 0.1])
    service.add_payload("left", near)
    service.add_payload("left", Payload(vector=[-9.0, 0.0]))

    found = service.knn_lookup("left", [-5.0, 0.0], 1, drain=True)

    assert found == [near]
    assert service.get_centroid("left").len_dp() == 1


def test_remove_centroid_returns_orphans():
    service = make_service()
    payload = Payload(vector=[-5.0, 0.0])
    service.add_payload("left", payload)

    orphans = service.remove_centroid("left")

    assert orphans == [payload]
    with pytest.raises(KeyError):
        service.get_centroid("left")


def test_reset_clears_registry():
    service = make_service()

    service.reset()

    assert service.list_states() == []


def test_assign_payload_ranks_with_the_centroids_own_metric():
    # Arrange
    service = CentroidService(metric="euclidean")
    service.create_centroid("a", [1.0, 0.0], metric="cosine")
    service.create_centroid("b", [0.0, 100.0], metric="cosine")

    # Act
    assigned = service.assign_payload(Payload(vector=[10.0, 20.0]))

    # Assert
    assert assigned == "b"
    assert service.get_centroid("b").len_dp() == 1


def test_assign_payload_with_mixed_metrics_raises():
    service = CentroidService(metric="euclidean")
    service.create_centroid("a", [1.0, 0.0])
    service.create_centroid("b", [0.0, 1.0], metric="cosine")

    with pytest.raises(ValueError):
        service.assign_payload(Payload(vector=[1.0, 1.0]))
    assert service.get_centroid("a").len_dp() == 0
    assert service.get_centroid("b").len_dp() == 0


def test_get_config_returns_copy():
    service = CentroidService(metric="cosine", payload_ttl=5.0)

    snapshot = service.get_config()
    snapshot["metric"] = "euclidean"

    assert service.get_config()["metric"] == "cosine"
    assert service.payload_ttl == 5.0
