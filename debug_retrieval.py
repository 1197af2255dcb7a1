# debug_retrieval.py
import asyncio
import json

from tripchat.retrieval import TravelRetriever
from tripchat.schemas import TripCriteria


async def main():
    criteria = TripCriteria(
        destination="Lisbon",
        start_date="2026-05-01",
        end_date="2026-05-04",
        budget=1800,
        travelers=2,
        travel_style="cultural",
        activities=["food", "history", "art"],
    )

    # Hits Exa directly; needs EXASEARCH_API_KEY in the environment or .env
    outcome = await TravelRetriever().collect(criteria)
    print(f"➡️ {len(outcome.queries)} queries, {outcome.raw_count} raw hits, "
          f"{outcome.unique_count} unique, {len(outcome.failures)} failed\n")
    for failure in outcome.failures:
        print(f"   ✗ {failure}")
    print(json.dumps([item.model_dump(mode="json", by_alias=True) for item in outcome.items], indent=2))


if __name__ == "__main__":
    asyncio.run(main())
