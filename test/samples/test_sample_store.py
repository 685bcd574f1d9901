import pytest

from taxanet.exceptions import UnknownTaxonError
from taxanet.samples import Sample, SampleStore


def test_from_taxon_ids_resolves_nodes(genus_tree):
    sample = Sample.from_taxon_ids(
        genus_tree, {1000: 3, 102: 2}, sample_id="gut", metadata={"site": "colon"}
    )
    assert sample.sample_id == "gut"
    assert sample.metadata == {"site": "colon"}
    assert sample.count(genus_tree.lookup(1000)) == 3
    assert sample.count(genus_tree.lookup(103)) == 0
    assert sample.total_count == 5
    assert len(sample) == 2


def test_unknown_taxon_id_creates_no_sample(genus_tree):
    store = SampleStore()
    with pytest.raises(UnknownTaxonError):
        store.add(Sample.from_taxon_ids(genus_tree, {1000: 3, 555: 1}))
    assert len(store) == 0


@pytest.mark.parametrize("bad_count", [-1, 2.5, "3", True])
def test_invalid_counts_are_rejected(genus_tree, bad_count):
    sample = Sample()
    with pytest.raises(ValueError):
        sample.set_count(genus_tree.lookup(100), bad_count)


def test_store_add_and_remove(genus_samples):
    store = SampleStore()
    assert store.add(genus_samples[0])
    assert not store.add(genus_samples[0]), "adding twice should fail"
    assert store.add(genus_samples[1])
    assert len(store) == 2

    assert store.remove(genus_samples[0])
    assert not store.remove(genus_samples[0])
    assert store.samples == [genus_samples[1]]


def test_selection_mode(genus_samples):
    store = SampleStore(genus_samples)
    store.select(genus_samples[2])
    store.select(genus_samples[0])

    assert store.samples_to_analyze() == genus_samples
    store.set_analyze_selected(True)
    # Load order, not selection order
    assert store.samples_to_analyze() == [genus_samples[0], genus_samples[2]]

    store.deselect(genus_samples[0])
    assert store.samples_to_analyze() == [genus_samples[2]]

    store.remove(genus_samples[2])
    assert store.selected == []


def test_selecting_foreign_sample_raises(genus_samples):
    store = SampleStore(genus_samples[:2])
    with pytest.raises(ValueError):
        store.select(genus_samples[3])


def test_version_tracks_mutations(genus_samples):
    store = SampleStore()
    versions = [store.version]
    store.add(genus_samples[0])
    versions.append(store.version)
    store.select(genus_samples[0])
    versions.append(store.version)
    store.set_analyze_selected(True)
    versions.append(store.version)
    assert versions == sorted(set(versions)), "every mutation bumps the version"

    before = store.version
    store.add(genus_samples[0])
    store.set_analyze_selected(True)
    assert store.version == before, "no-op calls keep the version"
