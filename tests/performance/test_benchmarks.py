"""Performance benchmarks for EntityDb over the in-memory store."""

import time

import pytest
import pytest_asyncio

from entity_db import DbConfig, EntityDb, EntityDefinition

PERSON = EntityDefinition(
    id="person",
    unique_properties=["ssn", "email"],
    indexed_property_chains=[["lastname", "firstname"], ["country", "zipcode"]],
)


def make_person(i):
    return {
        "ssn": f"{i:09d}",
        "email": f"person{i}@example.com",
        "firstname": f"First{i % 50}",
        "lastname": f"Last{i % 20}",
        "country": "US",
        "zipcode": f"{i % 10:05d}",
    }


@pytest_asyncio.fixture
async def benchmark_db():
    """Create an EntityDb on the default store, under its own prefix."""
    db = EntityDb(DbConfig(entity_definitions={"person": PERSON}, prefix=["tests.performance"]))
    await db.clear_all_entities()
    yield db
    await db.clear_all_entities()


@pytest.mark.asyncio
async def test_save_performance(benchmark_db):
    """Benchmark saving instances, each written at four keys."""
    num_records = 1000

    start_time = time.time()
    for i in range(num_records):
        await benchmark_db.save("person", make_person(i))
    duration = time.time() - start_time

    saves_per_second = num_records / duration if duration > 0 else float("inf")

    print(f"\nSaves: {saves_per_second:.0f} ops/sec")
    print(f"Total time: {duration:.3f}s for {num_records} records")

    assert saves_per_second > 100


@pytest.mark.asyncio
async def test_find_performance(benchmark_db):
    """Benchmark point lookups by unique property."""
    num_records = 500
    for i in range(num_records):
        await benchmark_db.save("person", make_person(i))

    start_time = time.time()
    for i in range(num_records):
        assert await benchmark_db.find("person", "email", f"person{i}@example.com") is not None
    duration = time.time() - start_time

    finds_per_second = num_records / duration if duration > 0 else float("inf")
    print(f"\nFinds: {finds_per_second:.0f} ops/sec")

    assert finds_per_second > 100


@pytest.mark.asyncio
async def test_find_all_scan(benchmark_db):
    """Benchmark prefix scans along an indexed property chain."""
    num_records = 1000
    for i in range(num_records):
        await benchmark_db.save("person", make_person(i))

    start_time = time.time()
    total = 0
    for zipcode in range(10):
        found = await benchmark_db.find_all("person", [("country", "US"), ("zipcode", f"{zipcode:05d}")])
        total += len(found)
    duration = time.time() - start_time

    print(f"\nScanned {total} instances in {duration:.3f}s")

    assert total == num_records
