def _adjust(client, lot_id, adjustment_type, quantity, reason="test"):
    return client.post(
        f"/inventory/{lot_id}/adjust",
        json={"adjustment_type": adjustment_type, "quantity": quantity, "reason": reason},
    )


def test_receiving_a_lot_records_an_addition(client, area, make_product, make_lot):
    product = make_product()
    lot = make_lot(product["id"], area["id"], 12.5)
    assert lot["quantity_available"] == 12.5
    assert lot["product_name"] == product["name"]
    assert lot["facility_id"] == area["facility_id"]

    history = client.get(f"/inventory/{lot['id']}/transactions").json()
    assert len(history) == 1
    tx = history[0]
    assert tx["transaction_type"] == "addition"
    assert tx["quantity_before"] == 0
    assert tx["quantity_after"] == 12.5
    assert tx["reference_type"] == "receipt"
    assert tx["performed_by_name"] == "Ana Rojas"


def test_empty_lot_has_no_history(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 0)
    assert client.get(f"/inventory/{lot['id']}/transactions").json() == []


def test_adjust_consumption_and_waste(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 10)

    res = _adjust(client, lot["id"], "consumption", 3)
    assert res.status_code == 201
    assert res.json()["new_stock"] == 7
    assert res.json()["transaction"]["quantity_change"] == -3

    res = _adjust(client, lot["id"], "WASTE", 2)
    assert res.json()["new_stock"] == 5


def test_adjust_never_goes_negative(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 4)
    res = _adjust(client, lot["id"], "consumption", 5)
    assert res.status_code == 409
    assert "Insufficient stock" in res.json()["detail"]
    assert client.get(f"/inventory/{lot['id']}").json()["quantity_available"] == 4


def test_adjust_correction_sets_absolute_value(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 4)
    res = _adjust(client, lot["id"], "correction", 9)
    assert res.json()["new_stock"] == 9
    assert res.json()["transaction"]["quantity_change"] == 5


def test_adjust_rejects_unknown_type(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 4)
    res = _adjust(client, lot["id"], "evaporation", 1)
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid adjustment type: evaporation"


def test_history_is_newest_first(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 10)
    _adjust(client, lot["id"], "consumption", 1)
    _adjust(client, lot["id"], "addition", 5)
    types = [t["transaction_type"] for t in client.get(f"/inventory/{lot['id']}/transactions").json()]
    assert types == ["addition", "consumption", "addition"]


def test_facility_listing_reports_stock_status(client, facility, area, make_product, make_lot):
    product = make_product()
    make_lot(product["id"], area["id"], 3, reorder_point=10)
    make_lot(product["id"], area["id"], 50, reorder_point=10)

    rows = client.get(f"/inventory/facility/{facility['id']}").json()
    assert sorted(r["stock_status"] for r in rows) == ["adequate", "critical"]


def test_low_stock_report(client, facility, area, make_product, make_lot):
    product = make_product()
    make_lot(product["id"], area["id"], 8, reorder_point=10)
    make_lot(product["id"], area["id"], 0, reorder_point=10)
    make_lot(product["id"], area["id"], 2, reorder_point=10)
    make_lot(product["id"], area["id"], 40, reorder_point=10)

    rows = client.get(f"/inventory/facility/{facility['id']}/low-stock").json()
    assert [(r["quantity_available"], r["stock_status"]) for r in rows] == [
        (2, "critical"),
        (0, "out_of_stock"),
        (8, "low"),
    ]


def test_update_lot(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 1)
    res = client.patch(f"/inventory/{lot['id']}", json={"lot_status": "quarantine", "notes": "mold"})
    assert res.status_code == 200
    assert res.json()["lot_status"] == "quarantine"
    assert res.json()["notes"] == "mold"
    assert res.json()["quantity_available"] == 1


def test_remove_lot_with_stock_is_soft(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 1)
    res = client.delete(f"/inventory/{lot['id']}")
    assert res.json()["deleted"] is False
    assert client.get(f"/inventory/{lot['id']}").json()["lot_status"] == "discontinued"


def test_remove_empty_lot_is_hard(client, area, make_product, make_lot):
    lot = make_lot(make_product()["id"], area["id"], 0)
    res = client.delete(f"/inventory/{lot['id']}")
    assert res.json()["deleted"] is True
    assert client.get(f"/inventory/{lot['id']}").status_code == 404


def test_list_lots(client, area, make_product, make_lot):
    a = make_product(sku="A")
    b = make_product(sku="B")
    make_lot(a["id"], area["id"], 1)
    make_lot(b["id"], area["id"], 2)

    body = client.get("/inventory/", params={"product_id": b["id"]}).json()
    assert body["total"] == 1
    assert body["items"][0]["product_sku"] == "B"


def test_product_history_spans_its_lots(client, facility, area, make_product, make_lot):
    product = make_product()
    cold = client.post(
        "/areas/",
        json={"facility_id": facility["id"], "name": "Cuarto frio", "area_type": "storage"},
    ).json()
    first = make_lot(product["id"], area["id"], 10, batch_number="B-1")
    second = make_lot(product["id"], cold["id"], 4, batch_number="B-2")
    make_lot(make_product(name="Sulfato de potasio")["id"], area["id"], 8)
    _adjust(client, first["id"], "consumption", 3)

    res = client.get(f"/inventory/product/{product['id']}/transactions")
    assert res.status_code == 200, res.text
    rows = res.json()
    assert [(r["transaction_type"], r["batch_number"], r["area_name"]) for r in rows] == [
        ("consumption", "B-1", "Bodega"),
        ("addition", "B-2", "Cuarto frio"),
        ("addition", "B-1", "Bodega"),
    ]
    assert rows[1]["inventory_item_id"] == second["id"]

    limited = client.get(f"/inventory/product/{product['id']}/transactions", params={"limit": 1}).json()
    assert len(limited) == 1


def test_lot_listing_total_counts_every_match(client, area, make_product, make_lot):
    product = make_product()
    lots = [make_lot(product["id"], area["id"], q) for q in (1, 2, 3)]

    page = client.get("/inventory/", params={"limit": 2, "offset": 1}).json()
    assert page["total"] == 3
    assert [r["id"] for r in page["items"]] == [lots[1]["id"], lots[2]["id"]]
