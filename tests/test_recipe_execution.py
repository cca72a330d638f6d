import uuid

import pytest
from sqlalchemy import select

from alquemist.db.database import Activity, InventoryTransaction
from alquemist.db.activity import ActivityImmutableError


def _recipe(client, ingredients, **extra):
    body = {
        "name": "Solucion vegetativa",
        "recipe_type": "nutrient",
        "ingredients": [{"product_id": pid, "quantity": qty, "unit": "kg"} for pid, qty in ingredients],
    }
    body.update(extra)
    res = client.post("/recipes/", json=body)
    assert res.status_code == 201, res.text
    return res.json()


def _execute(client, recipe_id, facility_id, **extra):
    body = {"facility_id": facility_id}
    body.update(extra)
    return client.post(f"/recipes/{recipe_id}/execute", json=body)


def _qty(client, lot_id):
    return client.get(f"/inventory/{lot_id}").json()["quantity_available"]


def _activities(client):
    return client.get("/activities/", params={"activity_type": "recipe_execution"}).json()["activities"]


@pytest.fixture()
def nitrate(make_product):
    return make_product(name="Nitrato de calcio", sku="NUT-0001")


def test_fifo_execution_consumes_oldest_lot_first(client, facility, area, nitrate, make_lot):
    lot_a = make_lot(nitrate["id"], area["id"], 4, received_date="2024-01-01T00:00:00Z")
    lot_b = make_lot(nitrate["id"], area["id"], 8, received_date="2024-02-01T00:00:00Z")
    recipe = _recipe(client, [(nitrate["id"], 10)])

    res = _execute(client, recipe["id"], facility["id"])
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["success"] is True
    assert [(c["inventory_item_id"], c["quantity_consumed"]) for c in body["consumed"]] == [
        (lot_a["id"], 4),
        (lot_b["id"], 6),
    ]
    assert body["statistics"] == {"ingredients_consumed": 2, "total_times_used": 1}

    assert _qty(client, lot_a["id"]) == 0
    assert _qty(client, lot_b["id"]) == 2

    activities = _activities(client)
    assert len(activities) == 1
    activity = activities[0]
    assert activity["id"] == body["activity_id"]
    assert activity["entity_type"] == "recipe"
    assert activity["entity_id"] == recipe["id"]
    assert [m["quantity_consumed"] for m in activity["materials_consumed"]] == [4, 6]
    assert activity["materials_consumed"][0]["product_name"] == "Nitrato de calcio"

    history = client.get(f"/inventory/{lot_b['id']}/transactions").json()
    assert history[0]["transaction_type"] == "consumption"
    assert history[0]["quantity_change"] == -6
    assert history[0]["reference_type"] == "recipe_execution"
    assert history[0]["reference_id"] == body["activity_id"]


def test_multiplier_scales_requirements(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 2)])

    res = _execute(client, recipe["id"], facility["id"], multiplier=2.5)
    assert res.status_code == 201, res.text
    assert _qty(client, lot["id"]) == 5


def test_usage_statistics_accumulate(client, facility, area, nitrate, make_lot):
    make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 1)])
    _execute(client, recipe["id"], facility["id"])
    res = _execute(client, recipe["id"], facility["id"])
    assert res.json()["statistics"]["total_times_used"] == 2

    stored = client.get(f"/recipes/{recipe['id']}").json()
    assert stored["times_used"] == 2
    assert stored["last_used_date"] is not None
    assert len(_activities(client)) == 2


def test_shortfall_rejects_without_changes(client, facility, area, nitrate, make_product, make_lot):
    other = make_product(name="Sulfato", sku="NUT-0002")
    lot_ok = make_lot(other["id"], area["id"], 10)
    lot_short = make_lot(nitrate["id"], area["id"], 3)
    recipe = _recipe(client, [(other["id"], 1), (nitrate["id"], 5)])

    res = _execute(client, recipe["id"], facility["id"])
    assert res.status_code == 409
    assert res.json()["detail"] == (
        "Insufficient stock for Nitrato de calcio. Required: 5, Available: 3, Shortfall: 2"
    )

    assert _qty(client, lot_ok["id"]) == 10
    assert _qty(client, lot_short["id"]) == 3
    assert _activities(client) == []
    assert client.get(f"/recipes/{recipe['id']}").json()["times_used"] == 0


def test_inactive_recipe_is_not_executed(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 1)])
    assert client.post(f"/recipes/{recipe['id']}/archive").status_code == 200

    res = _execute(client, recipe["id"], facility["id"])
    assert res.status_code == 409
    assert res.json()["detail"] == "Cannot execute an inactive recipe"
    assert _qty(client, lot["id"]) == 10
    assert _activities(client) == []


def test_unknown_recipe(client, facility):
    res = _execute(client, str(uuid.uuid4()), facility["id"])
    assert res.status_code == 404


def test_fifo_prefers_undated_and_skips_unavailable_or_remote_lots(client, facility, area, nitrate, make_lot):
    remote_facility = client.post("/facilities/", json={"name": "Finca Sur", "license_number": "LIC-002"}).json()
    remote_area = client.post(
        "/areas/", json={"facility_id": remote_facility["id"], "name": "Bodega Sur", "area_type": "storage"}
    ).json()

    remote = make_lot(nitrate["id"], remote_area["id"], 100, received_date="2020-01-01T00:00:00Z")
    quarantined = make_lot(nitrate["id"], area["id"], 100, received_date="2020-01-01T00:00:00Z", lot_status="quarantine")
    dated = make_lot(nitrate["id"], area["id"], 5, received_date="2024-01-01T00:00:00Z")
    undated = make_lot(nitrate["id"], area["id"], 2)
    recipe = _recipe(client, [(nitrate["id"], 3)])

    res = _execute(client, recipe["id"], facility["id"])
    assert res.status_code == 201, res.text
    assert [c["inventory_item_id"] for c in res.json()["consumed"]] == [undated["id"], dated["id"]]
    assert _qty(client, undated["id"]) == 0
    assert _qty(client, dated["id"]) == 4
    assert _qty(client, remote["id"]) == 100
    assert _qty(client, quarantined["id"]) == 100


def test_explicit_selection(client, facility, area, nitrate, make_lot):
    old = make_lot(nitrate["id"], area["id"], 5, received_date="2024-01-01T00:00:00Z")
    new = make_lot(nitrate["id"], area["id"], 5, received_date="2024-02-01T00:00:00Z")
    recipe = _recipe(client, [(nitrate["id"], 4)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": new["id"], "quantity": 4}],
    )
    assert res.status_code == 201, res.text
    assert _qty(client, old["id"]) == 5
    assert _qty(client, new["id"]) == 1


def test_selection_of_wrong_product(client, facility, area, nitrate, make_product, make_lot):
    other = make_product(name="Sulfato", sku="NUT-0002")
    other_lot = make_lot(other["id"], area["id"], 10)
    make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 4)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": other_lot["id"], "quantity": 4}],
    )
    assert res.status_code == 400
    assert res.json()["detail"] == f"Inventory item {other_lot['id']} is not for product Nitrato de calcio"
    assert _qty(client, other_lot["id"]) == 10


def test_selection_beyond_lot_stock(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 3)
    recipe = _recipe(client, [(nitrate["id"], 4)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 4}],
    )
    assert res.status_code == 409
    assert res.json()["detail"] == (
        "Insufficient stock in selected inventory for Nitrato de calcio. Available: 3, Requested: 4"
    )


def test_selection_must_cover_requirement(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 4)])

    short = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 3}],
    )
    assert short.status_code == 409
    assert short.json()["detail"] == (
        "Selected inventory for Nitrato de calcio is insufficient. Required: 4, Selected: 3"
    )

    over = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 6}],
    )
    assert over.status_code == 400
    assert _qty(client, lot["id"]) == 10


def test_selection_for_non_ingredient(client, facility, area, nitrate, make_product, make_lot):
    other = make_product(name="Sulfato", sku="NUT-0002")
    other_lot = make_lot(other["id"], area["id"], 10)
    make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 1)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": other["id"], "inventory_item_id": other_lot["id"], "quantity": 1}],
    )
    assert res.status_code == 400


def test_create_output_lot(client, facility, area, nitrate, make_product, make_lot):
    mix = make_product(name="Mezcla A", sku="MIX-1", category="other")
    make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(
        client,
        [(nitrate["id"], 2)],
        output_product_id=mix["id"],
        output_quantity=20,
        output_unit="L",
    )

    res = _execute(client, recipe["id"], facility["id"], multiplier=2, create_output=True, output_area_id=area["id"])
    assert res.status_code == 201, res.text
    output_id = res.json()["output_inventory_id"]

    lot = client.get(f"/inventory/{output_id}").json()
    assert lot["product_id"] == mix["id"]
    assert lot["quantity_available"] == 40
    assert lot["quantity_unit"] == "L"
    assert lot["source_type"] == "production"
    assert lot["source_recipe_id"] == recipe["id"]


def test_create_output_requires_an_area(client, facility, area, nitrate, make_product, make_lot):
    mix = make_product(name="Mezcla A", sku="MIX-1", category="other")
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 2)], output_product_id=mix["id"], output_quantity=20)

    res = _execute(client, recipe["id"], facility["id"], create_output=True)
    assert res.status_code == 400
    assert _qty(client, lot["id"]) == 10


def test_execution_in_foreign_facility(client, company, nitrate, foreign_facility):
    recipe = _recipe(client, [(nitrate["id"], 1)])
    res = _execute(client, recipe["id"], foreign_facility)
    assert res.status_code == 404


def test_activity_rows_are_append_only(client, facility, area, nitrate, make_lot, run_db):
    make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 1)])
    _execute(client, recipe["id"], facility["id"])

    async def _edit(s):
        activity = (await s.execute(select(Activity))).scalar_one()
        activity.notes = "rewritten"
        await s.commit()

    async def _delete(s):
        activity = (await s.execute(select(Activity))).scalar_one()
        await s.delete(activity)
        await s.commit()

    with pytest.raises(ActivityImmutableError):
        run_db(_edit)
    with pytest.raises(ActivityImmutableError):
        run_db(_delete)

    async def _count_consumptions(s):
        rows = await s.execute(
            select(InventoryTransaction).where(InventoryTransaction.transaction_type == "consumption")
        )
        return len(rows.scalars().all())

    assert run_db(_count_consumptions) == 1


def test_scaled_requirement_is_kept_in_stored_precision(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 0.125)])

    res = _execute(client, recipe["id"], facility["id"], multiplier=1.5)
    assert res.status_code == 201, res.text
    consumed = res.json()["consumed"][0]["quantity_consumed"]
    assert consumed == 0.188
    assert _qty(client, lot["id"]) == 9.812

    history = client.get(f"/inventory/{lot['id']}/transactions").json()
    assert history[0]["quantity_change"] == -0.188
    assert _activities(client)[0]["materials_consumed"][0]["quantity_consumed"] == 0.188


def test_requirement_rounding_to_zero_is_rejected(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 0.001)])

    res = _execute(client, recipe["id"], facility["id"], multiplier=0.1)
    assert res.status_code == 400
    assert _qty(client, lot["id"]) == 10


def test_repeated_selections_of_one_lot_are_summed(client, facility, area, nitrate, make_lot):
    lot = make_lot(nitrate["id"], area["id"], 5)
    other = make_lot(nitrate["id"], area["id"], 5)
    recipe = _recipe(client, [(nitrate["id"], 6)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[
            {"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 3},
            {"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 3},
        ],
    )
    assert res.status_code == 409
    assert res.json()["detail"] == (
        "Insufficient stock in selected inventory for Nitrato de calcio. Available: 5, Requested: 6"
    )
    assert _qty(client, lot["id"]) == 5
    assert _qty(client, other["id"]) == 5
    assert _activities(client) == []

    ok = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[
            {"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 2},
            {"product_id": nitrate["id"], "inventory_item_id": lot["id"], "quantity": 2},
            {"product_id": nitrate["id"], "inventory_item_id": other["id"], "quantity": 2},
        ],
    )
    assert ok.status_code == 201, ok.text
    assert _qty(client, lot["id"]) == 1
    assert _qty(client, other["id"]) == 3


def test_selected_lot_outside_facility_is_refused(client, facility, area, nitrate, make_lot):
    remote_facility = client.post("/facilities/", json={"name": "Finca Sur", "license_number": "LIC-002"}).json()
    remote_area = client.post(
        "/areas/", json={"facility_id": remote_facility["id"], "name": "Bodega Sur", "area_type": "storage"}
    ).json()
    remote = make_lot(nitrate["id"], remote_area["id"], 10)
    local = make_lot(nitrate["id"], area["id"], 10)
    recipe = _recipe(client, [(nitrate["id"], 4)])

    res = _execute(
        client,
        recipe["id"],
        facility["id"],
        inventory_selections=[{"product_id": nitrate["id"], "inventory_item_id": remote["id"], "quantity": 4}],
    )
    assert res.status_code == 400
    assert res.json()["detail"] == f"Inventory item {remote['id']} is not stored in this facility"
    assert _qty(client, remote["id"]) == 10
    assert _qty(client, local["id"]) == 10
    assert _activities(client) == []


def test_recipe_listing_pages_in_the_database(client, nitrate):
    ids = [_recipe(client, [(nitrate["id"], 1)], name=f"Mezcla {n}")["id"] for n in range(3)]

    page = client.get("/recipes/", params={"limit": 1, "offset": 2}).json()
    assert page["total"] == 3
    assert [r["id"] for r in page["recipes"]] == [ids[2]]
