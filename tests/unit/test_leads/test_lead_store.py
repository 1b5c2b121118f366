"""Unit tests for LeadStore and ConfigStore.

Covers:
  - save_leads dedup (stored + within batch), newest-first, cap
  - list_leads filtering, foundAt ordering, pagination
  - update_status / delete_lead
  - search history prepend and cap
  - dashboard aggregation
  - ConfigStore defaults, save, update
"""

from __future__ import annotations

import pytest


def _person(name, url=None, **kwargs):
    from tofu.models.leads import PersonLead

    return PersonLead(name=name, profile_url=url, **kwargs)


def _company(name, website=None, **kwargs):
    from tofu.models.leads import CompanyLead

    return CompanyLead(name=name, website=website, **kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Saving leads
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_save_leads_dedups_against_stored(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    assert await store.save_leads("person", [_person("Jane", "https://in/jane")]) == 1
    added = await store.save_leads("person", [_person("Jane again", "https://in/jane"), _person("Bob", "https://in/bob")])

    assert added == 1
    leads, total = await store.list_leads("person")
    assert total == 2
    assert {lead.name for lead in leads} == {"Jane", "Bob"}


@pytest.mark.asyncio
async def test_save_leads_dedups_within_batch(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    added = await store.save_leads(
        "company",
        [_company("Acme", "https://acme.example"), _company("Acme Inc", "https://acme.example")],
    )
    assert added == 1
    leads, _ = await store.list_leads("company")
    assert leads[0].name == "Acme"


@pytest.mark.asyncio
async def test_leads_without_key_are_never_duplicates(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    assert await store.save_leads("person", [_person("A"), _person("B")]) == 2
    assert await store.save_leads("person", [_person("C")]) == 1


@pytest.mark.asyncio
async def test_save_leads_newest_first_and_capped(kv):
    from tofu.leads.store import PEOPLE_KEY, LeadStore

    store = LeadStore(kv, leads_cap=3)
    await store.save_leads("person", [_person(f"old-{i}", f"https://in/old-{i}") for i in range(3)])
    await store.save_leads("person", [_person("new", "https://in/new")])

    raw = await kv.get(PEOPLE_KEY)
    assert len(raw) == 3
    assert raw[0]["name"] == "new"
    assert raw[0]["profileUrl"] == "https://in/new"
    assert "old-2" not in [item["name"] for item in raw]


@pytest.mark.asyncio
async def test_save_leads_swallows_storage_errors(kv, monkeypatch):
    from tofu.leads.store import LeadStore

    async def broken_set(key, value):
        raise ConnectionError("down")

    monkeypatch.setattr(kv, "set", broken_set)
    assert await LeadStore(kv).save_leads("person", [_person("Jane")]) == 0


# ─────────────────────────────────────────────────────────────────────────────
# 2. Listing / updating
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_leads_filters_and_sorts(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    await store.save_leads("person", [_person("P1", found_at="2026-01-01T00:00:00.000Z")])
    await store.save_leads(
        "company",
        [_company("C1", found_at="2026-03-01T00:00:00.000Z", status="accepted")],
    )
    await store.save_leads("person", [_person("P2", found_at="2026-02-01T00:00:00.000Z")])

    leads, total = await store.list_leads("all")
    assert total == 3
    assert [lead.name for lead in leads] == ["C1", "P2", "P1"]

    accepted, total = await store.list_leads("all", "accepted")
    assert (total, [lead.name for lead in accepted]) == (1, ["C1"])

    page, total = await store.list_leads("all", offset=1, limit=1)
    assert total == 3
    assert [lead.name for lead in page] == ["P2"]


@pytest.mark.asyncio
async def test_update_status_and_delete(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    lead = _person("Jane", "https://in/jane")
    await store.save_leads("person", [lead])

    assert await store.update_status("person", lead.id, "contacted") is True
    assert (await store.list_leads("person"))[0][0].status == "contacted"
    assert await store.update_status("person", "missing", "accepted") is False

    assert await store.delete_lead("person", lead.id) is True
    assert await store.delete_lead("person", lead.id) is False
    assert (await store.list_leads("person"))[1] == 0


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_status(kv):
    from tofu.leads.store import LeadStore

    with pytest.raises(ValueError):
        await LeadStore(kv).update_status("person", "x", "archived")


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped(kv):
    from tofu.leads.store import PEOPLE_KEY, LeadStore

    await kv.set(PEOPLE_KEY, [{"name": "Jane", "type": "person"}, {"bogus": True}])
    leads, total = await LeadStore(kv).list_leads("person")
    assert total == 1
    assert leads[0].name == "Jane"


# ─────────────────────────────────────────────────────────────────────────────
# 3. History / dashboard
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_history_prepends_and_caps(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv, history_cap=2)
    for query in ("one", "two", "three"):
        await store.record_search(query, "people", 5)

    items, total = await store.get_history()
    assert total == 2
    assert [item.query for item in items] == ["three", "two"]
    assert items[0].search_type == "people"
    assert items[0].result_count == 5

    await store.clear_history()
    assert (await store.get_history())[1] == 0


@pytest.mark.asyncio
async def test_dashboard_data(kv):
    from tofu.leads.store import LeadStore

    store = LeadStore(kv)
    await store.record_search("React devs", "people", 2)
    await store.save_leads("person", [_person("Jane"), _person("Bob", status="accepted")])
    await store.increment_leads_added()
    await store.increment_leads_added()

    data = await store.dashboard_data()

    assert data["stats"] == {
        "totalSearches": 1,
        "totalLeadsFound": 2,
        "pendingLeads": 1,
        "acceptedLeads": 1,
        "leadsAddedToJira": 2,
    }
    assert data["recentSearches"][0]["query"] == "React devs"
    assert len(data["recentLeads"]) == 2


# ─────────────────────────────────────────────────────────────────────────────
# 4. ConfigStore
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_config_defaults_when_absent_or_invalid(kv):
    from tofu.leads.store import CONFIG_KEY, ConfigStore

    store = ConfigStore(kv)
    assert (await store.load()).default_result_count == 10

    await kv.set(CONFIG_KEY, {"defaultResultCount": 1000})
    assert (await store.load()).default_result_count == 10


@pytest.mark.asyncio
async def test_config_update_accepts_either_spelling(kv):
    from tofu.leads.store import CONFIG_KEY, ConfigStore

    store = ConfigStore(kv)
    await store.update(default_project_key="LEADS")
    config = await store.update(autoSaveResults=False)

    assert config.default_project_key == "LEADS"
    assert config.auto_save_results is False
    assert (await kv.get(CONFIG_KEY))["defaultProjectKey"] == "LEADS"
