import logging
from typing import Dict, List

import pytest

from taxanet.samples import Sample
from taxanet.taxonomy import TaxonHierarchy


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Two families with two genera each; genera 100 and 101 carry one species.
GENUS_RECORDS = [
    (1, "root", "no rank", 1),
    (2, "Bacteria", "superkingdom", 1),
    (10, "Family A", "family", 2),
    (11, "Family B", "family", 2),
    (100, "Genus A", "genus", 10),
    (101, "Genus B", "genus", 10),
    (102, "Genus C", "genus", 11),
    (103, "Genus D", "genus", 11),
    (1000, "Species A1", "species", 100),
    (1010, "Species B1", "species", 101),
]

# At genus rank: 100 and 101 rise together, 103 falls, 102 wobbles upward.
SAMPLE_COUNTS: List[Dict[int, int]] = [
    {1000: 10, 1010: 5, 102: 1, 103: 7},
    {1000: 20, 1010: 10, 102: 3, 103: 5},
    {1000: 30, 1010: 15, 102: 2, 103: 3},
    {1000: 40, 1010: 20, 102: 4, 103: 1},
]


@pytest.fixture
def small_tree():
    """
    1 is parent of 2 and 3, 2 is parent of 4 and 5, 4 is parent of 6.
    """
    return TaxonHierarchy.build(
        [
            (1, "n1", "no rank", None),
            (2, "n2", "phylum", 1),
            (3, "n3", "phylum", 1),
            (4, "n4", "genus", 2),
            (5, "n5", "genus", 2),
            (6, "n6", "species", 4),
        ]
    )


@pytest.fixture
def genus_tree():
    return TaxonHierarchy.build(GENUS_RECORDS)


@pytest.fixture
def genus_samples(genus_tree):
    return [
        Sample.from_taxon_ids(genus_tree, counts, sample_id=f"s{i + 1}")
        for i, counts in enumerate(SAMPLE_COUNTS)
    ]


@pytest.fixture
def sample_counts():
    return [dict(counts) for counts in SAMPLE_COUNTS]
