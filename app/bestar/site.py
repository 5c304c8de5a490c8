"""Static site content: contact details and the solutions catalogue."""
from __future__ import annotations

from dataclasses import dataclass

SITE_NAME = "Bestar Service CCA"


@dataclass(frozen=True)
class Solution:
    key: str
    slug: str
    title: str
    description: str
    image: str
    features: tuple[str, ...] = ()


SOLUTIONS: tuple[Solution, ...] = (
    Solution(
        "fbaLastMile",
        "fba-last-mile",
        "FBA Last Mile",
        "Pallet and parcel delivery into Amazon fulfilment centres with booked appointments.",
        "/static/images/services/express-delivery.jpg",
        ("Appointment booking", "Pallet and parcel delivery", "Proof of delivery"),
    ),
    Solution(
        "truckFreight",
        "truck-freight",
        "Truck Freight",
        "FTL and LTL trucking across Canada and into the United States.",
        "/static/images/services/truck-delivery.jpg",
        ("FTL and LTL", "Cross-border lanes", "Live tracking"),
    ),
    Solution(
        "crossBorder",
        "cross-border",
        "Cross-border Logistics",
        "Door-to-door shipping from China to North America by sea, air and express.",
        "/static/images/services/cross-border.jpg",
        ("Sea, air and express", "Customs clearance", "Duty handling"),
    ),
    Solution(
        "amazonFba",
        "amazon-fba",
        "Amazon FBA Prep",
        "Receiving, labelling and prep so inventory is accepted at the first scan.",
        "/static/images/services/amazon-fba.jpg",
        ("FNSKU labelling", "Bundling and poly-bagging", "Carton labels"),
    ),
    Solution(
        "warehouse",
        "warehouse",
        "Warehousing",
        "Bonded-ready storage in Calgary with inventory visibility per SKU.",
        "/static/images/services/warehouse.jpg",
        ("Pallet and shelf storage", "Cycle counts", "Inventory reports"),
    ),
    Solution(
        "dropshipping",
        "dropshipping",
        "Dropshipping",
        "Single-order fulfilment with marketplace order sync and next-day dispatch.",
        "/static/images/services/dropshipping.jpg",
        ("Marketplace integration", "Automatic order sync", "Custom packaging"),
    ),
    Solution(
        "returns",
        "returns",
        "Returns and Relabelling",
        "Returns receiving, inspection and relabelling for resale.",
        "/static/images/services/returns.jpg",
        ("Returns receiving", "Quality inspection", "Relabel and repack"),
    ),
)

_BY_SLUG = {s.slug: s for s in SOLUTIONS}


def get_solution(slug: str) -> Solution | None:
    return _BY_SLUG.get(slug)


def neighbours(slug: str) -> tuple[Solution | None, Solution | None]:
    """Previous/next solution in catalogue order (wraps around)."""
    keys = [s.slug for s in SOLUTIONS]
    if slug not in keys:
        return None, None
    i = keys.index(slug)
    return SOLUTIONS[i - 1], SOLUTIONS[(i + 1) % len(SOLUTIONS)]
