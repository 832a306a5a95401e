"""Tests for filtered catalog queries."""
import pytest

from services import CatalogQueryService, NotFoundError


class TestFind:
    """Product listing with existential relation filters."""

    def test_category_filter_matches_any_association(self, seed, make_product):
        both = make_product(name="Both", category_ids=[seed['shirts'], seed['sale']])
        sale_only = make_product(name="Sale only", category_ids=[seed['sale']])
        make_product(name="Hats", category_ids=[seed['hats']])

        products = CatalogQueryService().find(seed['store_id'], category_id=seed['sale'])

        assert {p.id for p in products} == {both, sale_only}

    def test_archived_excluded_by_default(self, seed, make_product):
        visible = make_product(name="Visible", category_ids=[seed['shirts']])
        make_product(name="Archived", category_ids=[seed['shirts']], is_archived=True)

        products = CatalogQueryService().find(seed['store_id'], category_id=seed['shirts'])

        assert [p.id for p in products] == [visible]

    def test_archived_only_when_requested(self, seed, make_product):
        make_product(name="Visible")
        archived = make_product(name="Archived", is_archived=True)

        products = CatalogQueryService().find(seed['store_id'], is_archived=True)

        assert [p.id for p in products] == [archived]

    def test_featured_filter(self, seed, make_product):
        featured = make_product(name="Featured", is_featured=True)
        plain = make_product(name="Plain")
        service = CatalogQueryService()

        assert [p.id for p in service.find(seed['store_id'], is_featured=True)] == [featured]
        assert {p.id for p in service.find(seed['store_id'])} == {featured, plain}

    def test_filters_combine(self, seed, make_product):
        match = make_product(size_ids=[seed['large']], color_ids=[seed['black']])
        make_product(size_ids=[seed['large']], color_ids=[seed['white']])
        make_product(size_ids=[seed['small']], color_ids=[seed['black']])

        products = CatalogQueryService().find(seed['store_id'], size_id=seed['large'], color_id=seed['black'])

        assert [p.id for p in products] == [match]

    def test_newest_first(self, seed, make_product):
        first = make_product(name="First")
        second = make_product(name="Second")
        third = make_product(name="Third")

        products = CatalogQueryService().find(seed['store_id'])

        assert [p.id for p in products] == [third, second, first]

    def test_store_scoped(self, seed, make_product):
        make_product(name="Other", store_id=seed['other_store_id'])

        assert CatalogQueryService().find(seed['store_id']) == []

    def test_results_are_legacy_views(self, seed, make_product):
        make_product(category_ids=[seed['sale'], seed['shirts']], image_urls=["https://cdn.example.com/a.jpg"])

        [product] = CatalogQueryService().find(seed['store_id'])

        assert product.category.id == seed['sale']
        assert [c.id for c in product.categories] == [seed['sale'], seed['shirts']]
        assert product.size is None
        assert product.images[0].url == "https://cdn.example.com/a.jpg"
        assert product.price == 19.99


class TestGet:
    """Single product lookups."""

    def test_get(self, seed, make_product):
        product_id = make_product(name="Tee", color_ids=[seed['black']])

        product = CatalogQueryService().get(product_id, seed['store_id'])

        assert product.name == "Tee"
        assert product.color.name == "Black"

    def test_get_outside_store(self, seed, make_product):
        product_id = make_product()

        with pytest.raises(NotFoundError):
            CatalogQueryService().get(product_id, seed['other_store_id'])
