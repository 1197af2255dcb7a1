from dataclasses import replace

from tripchat.agents.query_planner import budget_tier, duration_label, plan_queries
from tripchat.schemas import TripCriteria
from tripchat.tools.providers import DEFAULT_CATALOG, SiteQuery


def test_empty_criteria_falls_back_to_popular_destination():
    queries = plan_queries(TripCriteria())

    assert len(queries) == 16
    assert all('"popular destination"' in q for q in queries)
    assert queries[0] == 'site:booking.com "popular destination" hotels'


def test_queries_fold_in_budget_tier_and_style():
    queries = plan_queries(TripCriteria(destination="Tokyo", budget=2500, travel_style="romantic"))

    assert queries[:3] == [
        'site:booking.com "Tokyo" hotels luxury romantic',
        'site:airbnb.com "Tokyo" romantic accommodation',
        'site:hotels.com "Tokyo" luxury hotels',
    ]
    assert 'site:kayak.com flights to "Tokyo"' in queries


def test_query_groups_are_ordered_by_intent():
    queries = plan_queries(TripCriteria(destination="Rome"))
    sites = [q.split()[0] for q in queries]

    assert sites == [
        "site:booking.com",
        "site:airbnb.com",
        "site:hotels.com",
        "site:tripadvisor.com",
        "site:yelp.com",
        "site:opentable.com",
        "site:timeout.com",
        "site:tripadvisor.com",
        "site:viator.com",
        "site:getyourguide.com",
        "site:klook.com",
        "site:lonelyplanet.com",
        "site:fodors.com",
        "site:frommers.com",
        "site:kayak.com",
        "site:rome2rio.com",
    ]


def test_activities_add_two_queries_each_and_are_capped():
    criteria = TripCriteria(
        destination="Rome",
        activities=["sports", "art", "food", "history", "nature", "nightlife", "shopping"],
    )
    queries = plan_queries(criteria)

    assert len(queries) == 16 + 2 * 5
    interest_queries = queries[16:]
    assert interest_queries[0] == 'site:tripadvisor.com "Rome" "art" activities'
    assert interest_queries[1] == 'site:viator.com "Rome" "art" tours'
    assert not any('"sports"' in q or '"shopping"' in q for q in interest_queries)


def test_planning_is_deterministic_for_the_same_interest_set():
    first = plan_queries(TripCriteria(destination="Rome", activities=["food", "art"]))
    second = plan_queries(TripCriteria(destination="Rome", activities=["art", "food"]))
    assert first == second


def test_duration_queries_use_duration_label():
    queries = plan_queries(TripCriteria(destination="Paris", duration=7))

    assert queries[-2:] == [
        '"Paris" week itinerary guide',
        'site:timeout.com "Paris" week guide',
    ]


def test_duration_from_date_span_when_duration_missing():
    queries = plan_queries(TripCriteria(destination="Paris", start_date="2026-06-01", end_date="2026-06-02"))
    assert queries[-1] == 'site:timeout.com "Paris" weekend guide'


def test_budget_tiers_and_duration_labels():
    assert budget_tier(None) == ""
    assert budget_tier(2001) == "luxury"
    assert budget_tier(2000) == "mid-range"
    assert budget_tier(1000) == "budget"
    assert duration_label(1) == "day trip"
    assert duration_label(3) == "weekend"
    assert duration_label(7) == "week"
    assert duration_label(8) == "long trip"


def test_custom_catalog_changes_queries_without_code_changes():
    catalog = replace(
        DEFAULT_CATALOG,
        transport_queries=DEFAULT_CATALOG.transport_queries + (SiteQuery("trainline.com", '"{destination}" trains'),),
    )
    queries = plan_queries(TripCriteria(destination="Milan"), catalog)
    assert 'site:trainline.com "Milan" trains' in queries
    assert len(queries) == 17
