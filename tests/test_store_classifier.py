"""
Store classification tests.

Guards against:
1. A database outage failing the insight request
2. Proximity rules applied in the wrong order (military before college)
3. Auto-classifications never persisted
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from store_intelligence.models.base import init_db
from store_intelligence.repositories import ClassificationRepository
from store_intelligence.services.store_classifier import DEMAND_PATTERNS, StoreClassifier
from store_intelligence.utils.cache import TTLCache
from store_intelligence.utils.helpers import haversine_miles

from fakes import FakeMonotonic, FakeRepository, make_store, run


def test_haversine_miles():
    # UCLA to downtown Los Angeles, roughly 11 miles
    assert 10 < haversine_miles(34.0689, -118.4452, 34.0522, -118.2437) < 12
    assert haversine_miles(36.7, -119.7, 36.7, -119.7) == 0


# ---------------------------------------------------------------------------
# Proximity
# ---------------------------------------------------------------------------

def test_near_military_base():
    store = make_store(city="Oceanside", latitude=33.21, longitude=-117.35)
    classification = StoreClassifier().auto_classify(store)
    assert classification.type == "military"
    assert classification.sub_type == "Camp Pendleton"
    assert classification.patterns == DEMAND_PATTERNS["military"]


def test_college_wins_over_downtown():
    store = make_store(city="Los Angeles", latitude=34.07, longitude=-118.44)
    assert StoreClassifier().auto_classify(store).type == "college"


def test_downtown_city():
    store = make_store(city="Los Angeles", latitude=34.0522, longitude=-118.2437)
    classification = StoreClassifier().auto_classify(store)
    assert (classification.type, classification.sub_type) == ("downtown", "urban_core")


def test_seed_locations_scoped_by_state():
    # Same coordinates as Camp Pendleton, but the store says Nevada
    store = make_store(state="NV", city="Nowhere", latitude=33.2341, longitude=-117.3897)
    assert StoreClassifier().auto_classify(store).type == "suburban"


def test_default_is_suburban():
    classification = StoreClassifier().auto_classify(make_store())
    assert (classification.type, classification.sub_type) == ("suburban", "standard")
    assert classification.source == "auto"


# ---------------------------------------------------------------------------
# Lookup order
# ---------------------------------------------------------------------------

def test_stored_classification_wins():
    repository = FakeRepository({"1234": {"type": "college", "sub_type": "Fresno State"}})
    classifier = StoreClassifier(repository=repository)

    classification = run(classifier.classify(make_store()))
    assert classification.type == "college"
    assert classification.sub_type == "Fresno State"
    assert classification.source == "database"
    assert repository.writes == []


def test_unknown_stored_type_falls_back_to_proximity():
    repository = FakeRepository({"1234": {"type": "airport", "sub_type": "FAT"}})
    classification = run(StoreClassifier(repository=repository).classify(make_store()))
    assert classification.type == "suburban"


def test_repository_failure_is_tolerated():
    repository = FakeRepository(fail_read=True)
    classifier = StoreClassifier(repository=repository)

    async def scenario():
        result = await classifier.classify(make_store())
        await classifier.drain()
        return result

    classification = run(scenario())
    assert classification.type == "suburban"
    # A row we could not read must not be overwritten
    assert repository.writes == []


def test_repository_retried_after_outage():
    clock = FakeMonotonic()
    repository = FakeRepository({"1234": {"type": "college", "sub_type": "Fresno State"}}, fail_read=True)
    classifier = StoreClassifier(repository=repository, cache=TTLCache(clock=clock), retry_ttl=300)

    async def scenario():
        results = [await classifier.classify(make_store())]
        clock.advance(60)
        results.append(await classifier.classify(make_store()))
        repository.fail_read = False
        clock.advance(241)
        results.append(await classifier.classify(make_store()))
        await classifier.drain()
        return results

    during, cached, recovered = run(scenario())
    assert during.type == "suburban"
    assert cached.type == "suburban"
    assert recovered.type == "college"
    assert recovered.source == "database"
    assert repository.reads == ["1234", "1234"]


def test_write_failure_is_tolerated():
    classifier = StoreClassifier(repository=FakeRepository(fail_write=True))

    async def scenario():
        result = await classifier.classify(make_store())
        await classifier.drain()
        return result

    assert run(scenario()).type == "suburban"


def test_second_lookup_served_from_cache():
    repository = FakeRepository()
    classifier = StoreClassifier(repository=repository)

    async def scenario():
        await classifier.classify(make_store())
        await classifier.classify(make_store())
        await classifier.drain()

    run(scenario())
    assert repository.reads == ["1234"]


# ---------------------------------------------------------------------------
# SQLAlchemy repository
# ---------------------------------------------------------------------------

def _memory_repository():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return ClassificationRepository(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def test_auto_classification_written_back_to_database():
    repository = _memory_repository()
    classifier = StoreClassifier(repository=repository)
    store = make_store(city="Oceanside", latitude=33.21, longitude=-117.35)

    async def scenario():
        await classifier.classify(store)
        await classifier.drain()
        return await repository.read_classification("1234")

    assert run(scenario()) == {"type": "military", "sub_type": "Camp Pendleton"}


def test_repository_update_and_missing_row():
    repository = _memory_repository()

    async def scenario():
        missing = await repository.read_classification("999")
        await repository.write_classification("999", {"type": "college", "sub_type": "UCLA"})
        await repository.write_classification("999", {"type": "downtown", "sub_type": "urban_core"})
        return missing, await repository.read_classification("999")

    missing, stored = run(scenario())
    assert missing is None
    assert stored == {"type": "downtown", "sub_type": "urban_core"}
