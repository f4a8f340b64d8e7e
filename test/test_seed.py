from _helper import make_world, run

from laundry_orders.models import Role
from laundry_orders.repository import InMemoryRepository
from laundry_orders.seed import SAMPLE_BUSINESSES, seed_sample_businesses


def test_seed_inserts_samples_into_empty_store():
    repo = InMemoryRepository()
    inserted = run(seed_sample_businesses(repo))

    assert len(inserted) == len(SAMPLE_BUSINESSES)
    assert all(u.id is not None and u.role == Role.BUSINESS for u in inserted)


def test_seed_skips_when_businesses_exist():
    world = make_world()
    assert run(seed_sample_businesses(world.repo)) == []
    assert len(run(world.repo.load_users_by_role(Role.BUSINESS))) == 2
