import asyncio

from wms.remote import UPDATE, ChangeEvent
from wms.sync import MutationOutcome

from conftest import make_actor, make_product


def test_add_product_records_initial_inbound(remote, store):
    store.current_user = make_actor("ADMIN", name="Nok")

    result = asyncio.run(store.add_product(make_product(stock=12)))

    assert result.outcome is MutationOutcome.CONFIRMED
    product = store.products.get(result.data["id"])
    assert product["wholesale_price2"] == 0
    assert product["updated_by"] == "Nok"
    assert product["status"] == "Low Stock"
    assert result.data["id"] in remote.table("products").rows

    [tx] = store.transactions.all()
    assert tx["type"] == "INBOUND"
    assert tx["reference_id"] == "INITIAL_ADD"
    assert tx["quantity"] == 12
    assert tx["to_location"] == "A-01-01"
    assert tx["user"] == "Nok"


def test_add_product_without_stock_records_nothing(store):
    asyncio.run(store.add_product(make_product(stock=0)))
    assert len(store.transactions) == 0


def test_duplicate_barcode_in_same_warehouse_is_rejected_locally(remote, store):
    async def scenario():
        first = await store.add_product(make_product())
        second = await store.add_product(make_product(name="Other"))
        return first, second

    first, second = asyncio.run(scenario())

    assert first.ok
    assert second.outcome is MutationOutcome.REJECTED
    assert len(store.products) == 1
    assert remote.table("products").count("insert") == 1


def test_same_barcode_in_another_warehouse_is_allowed(store):
    async def scenario():
        await store.add_product(make_product())
        return await store.add_product(make_product(warehouse="Branch 2"))

    assert asyncio.run(scenario()).ok
    assert len(store.products) == 2


def test_add_product_offline_keeps_local_copy(remote, store, offline):
    remote.table("products").fail("insert", offline)
    remote.table("transactions").fail("insert", offline)

    result = asyncio.run(store.add_product(make_product()))

    assert result.outcome is MutationOutcome.OFFLINE
    assert len(store.products) == 1
    assert len(store.transactions) == 1


def test_add_product_rejected_by_backend_rolls_back(remote, store, rejected):
    remote.table("products").fail("insert", rejected)

    result = asyncio.run(store.add_product(make_product()))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert result.message == "new row violates row-level security policy"
    assert len(store.products) == 0
    assert len(store.transactions) == 0


def test_stock_change_with_reason_records_transaction(remote, store):
    product = make_product(id="11111111-1111-4111-8111-111111111111", stock=10)
    store.products.reset([product])
    remote.table("products").seed(product)

    result = asyncio.run(store.update_product({"id": product["id"], "stock": 4}, "Damaged"))

    assert result.outcome is MutationOutcome.CONFIRMED
    assert store.products.get(product["id"])["stock"] == 4
    [tx] = store.transactions.all()
    assert tx["type"] == "OUTBOUND"
    assert tx["quantity"] == 6
    assert tx["reference_id"] == "Damaged"
    assert tx["from_location"] == "A-01-01"


def test_stock_change_without_reason_records_nothing(remote, store):
    product = make_product(id="11111111-1111-4111-8111-111111111111")
    store.products.reset([product])
    remote.table("products").seed(product)

    asyncio.run(store.update_product({"id": product["id"], "stock": 40}))

    assert store.products.get(product["id"])["status"] == "In Stock"
    assert len(store.transactions) == 0


def test_failed_update_restores_previous_stock(remote, store, rejected):
    product = make_product(id="11111111-1111-4111-8111-111111111111", stock=10)
    store.products.reset([product])
    remote.table("products").fail("update", rejected)

    result = asyncio.run(store.adjust_product_stock(product["id"], 3, "Count"))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert store.products.get(product["id"])["stock"] == 10
    assert len(store.transactions) == 0


def test_offline_update_keeps_new_stock(remote, store, offline):
    product = make_product(id="11111111-1111-4111-8111-111111111111", stock=10)
    store.products.reset([product])
    remote.table("products").fail("update", offline)

    result = asyncio.run(store.adjust_product_stock(product["id"], 3, "Count"))

    assert result.outcome is MutationOutcome.OFFLINE
    assert store.products.get(product["id"])["stock"] == 3
    assert len(store.transactions) == 1


def test_rollback_does_not_clobber_realtime_update(remote, store, rejected):
    from wms.realtime import RealtimeIngress

    product = make_product(id="11111111-1111-4111-8111-111111111111", stock=10)
    store.products.reset([product])
    table = remote.table("products")
    table.fail("update", rejected)
    ingress = RealtimeIngress(store, remote)

    async def scenario():
        table.hold = asyncio.Event()
        pending = asyncio.create_task(store.adjust_product_stock(product["id"], 3, "Count"))
        await asyncio.sleep(0)
        ingress.apply_change(ChangeEvent("products", UPDATE, new={**product, "stock": 25}))
        table.hold.set()
        return await pending

    result = asyncio.run(scenario())

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert store.products.get(product["id"])["stock"] == 25


def test_update_unknown_product(store):
    result = asyncio.run(store.update_product({"id": "missing", "stock": 1}))
    assert result.outcome is MutationOutcome.REJECTED
    assert result.missing


def test_delete_rollback_restores_position(remote, store, rejected):
    rows = [make_product(id=f"p-{i}", barcode=f"B{i}") for i in range(3)]
    store.products.reset(rows)
    remote.table("products").fail("delete", rejected)

    result = asyncio.run(store.delete_product("p-1"))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert [p["id"] for p in store.products] == ["p-0", "p-1", "p-2"]


def test_delete_product(remote, store):
    product = make_product(id="p-1")
    store.products.reset([product])
    remote.table("products").seed(product)

    assert asyncio.run(store.delete_product("p-1")).outcome is MutationOutcome.CONFIRMED
    assert "p-1" not in store.products
    assert remote.table("products").rows == {}


# ── Moving stock between shelves ─────────────────────────────────


def test_move_product_records_transfer_and_shelf_log(remote, store):
    product = make_product(id="p-1", stock=7)
    store.products.reset([product])
    remote.table("products").seed(product)
    store.current_user = make_actor("INSPECTOR", name="Mali")

    result = asyncio.run(store.move_product("8850001", "B-02-03", "MANUAL"))

    assert result.outcome is MutationOutcome.CONFIRMED
    assert result.message == "Moved Jasmine Rice 5kg to B-02-03"
    assert store.products.get("p-1")["location"] == "B-02-03"

    [tx] = store.transactions.all()
    assert tx["type"] == "TRANSFER"
    assert tx["from_location"] == "A-01-01"
    assert tx["to_location"] == "B-02-03"
    assert tx["quantity"] == 7

    log = store.get_latest_shelf_log("p-1")
    assert log["old_location"] == "A-01-01"
    assert log["new_location"] == "B-02-03"
    assert log["method"] == "MANUAL"
    assert log["operator"] == "Mali"
    assert log["barcode"] == "8850001"


def test_move_to_current_location_is_a_noop(remote, store):
    store.products.reset([make_product(id="p-1")])

    result = asyncio.run(store.move_product("8850001", "A-01-01"))

    assert result.ok
    assert result.outcome is MutationOutcome.NOOP
    assert remote.table("products").calls == []
    assert len(store.transactions) == 0


def test_move_unknown_barcode_fails(store):
    result = asyncio.run(store.move_product("000", "B-01-01"))
    assert result.outcome is MutationOutcome.REJECTED


def test_latest_shelf_log_is_newest(remote, store):
    store.products.reset([make_product(id="p-1")])

    async def scenario():
        await store.move_product("8850001", "B-01-01")
        await store.move_product("8850001", "C-01-01")

    asyncio.run(scenario())
    assert store.get_latest_shelf_log("p-1")["new_location"] == "C-01-01"
    assert store.get_latest_shelf_log("p-2") is None


# ── Imports ──────────────────────────────────────────────────────


def test_bulk_upsert_updates_existing_and_adds_new(remote, store):
    existing = make_product(id="p-1", stock=5, category="Grocery")
    store.products.reset([existing])
    remote.table("products").seed(existing)

    result = asyncio.run(
        store.bulk_upsert_products(
            [
                {"barcode": "8850001", "warehouse": "Main", "stock": 30, "category": ""},
                {"barcode": "9990001", "warehouse": "Main", "name": "Fish Sauce"},
            ]
        )
    )

    assert result.outcome is MutationOutcome.CONFIRMED
    assert len(store.products) == 2
    assert remote.table("products").count("upsert") == 1

    updated = store.products.get("p-1")
    assert updated["stock"] == 30
    assert updated["category"] == "Grocery"
    assert updated["status"] == "In Stock"

    new = store.search_product("9990001")
    assert new["stock"] == 0
    assert new["status"] == "Out of Stock"
    assert new["unit"] == "PCS"
    assert new["category"] == "General"
    assert new["sku"].startswith("SKU-")


def test_bulk_upsert_matches_by_sku_when_barcode_differs(store):
    store.products.reset([make_product(id="p-1", sku="RICE-5")])

    asyncio.run(store.bulk_upsert_products([{"sku": "RICE-5", "warehouse": "Main", "barcode": "NEW", "stock": 1}]))

    assert len(store.products) == 1
    assert store.products.get("p-1")["barcode"] == "NEW"


def test_bulk_upsert_later_rows_win(store):
    asyncio.run(
        store.bulk_upsert_products(
            [
                {"barcode": "X1", "warehouse": "Main", "stock": 1},
                {"barcode": "X1", "warehouse": "Main", "stock": 50},
            ]
        )
    )
    [row] = store.products.all()
    assert row["stock"] == 50


def test_bulk_upsert_offline_applies_batch(remote, store, offline):
    remote.table("products").fail("upsert", offline)

    result = asyncio.run(store.bulk_upsert_products([{"barcode": "X1", "warehouse": "Main"}]))

    assert result.outcome is MutationOutcome.OFFLINE
    assert store.search_product("X1")["name"] == "Unknown Product"


def test_bulk_upsert_rejected_applies_nothing(remote, store, rejected):
    remote.table("products").fail("upsert", rejected)

    result = asyncio.run(store.bulk_upsert_products([{"barcode": "X1", "warehouse": "Main"}]))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert len(store.products) == 0


def test_bulk_update_rolls_back_every_row(remote, store, rejected):
    store.products.reset([make_product(id="p-1", barcode="A"), make_product(id="p-2", barcode="B")])
    remote.table("products").fail("update_many", rejected)

    result = asyncio.run(store.bulk_update_products(["p-1", "p-2", "ghost"], {"category": "Frozen"}))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert {p["category"] for p in store.products} == {"Grocery"}


def test_bulk_update(remote, store):
    rows = [make_product(id="p-1", barcode="A"), make_product(id="p-2", barcode="B")]
    store.products.reset(rows)
    remote.table("products").seed(*rows)

    result = asyncio.run(store.bulk_update_products(["p-1", "p-2"], {"category": "Frozen"}))

    assert result.outcome is MutationOutcome.CONFIRMED
    assert {p["category"] for p in store.products} == {"Frozen"}
    assert {p["category"] for p in remote.table("products").rows.values()} == {"Frozen"}


# ── Queries ──────────────────────────────────────────────────────


def test_search_by_barcode_or_sku(store):
    store.products.reset([make_product(id="p-1")])
    assert store.search_product("8850001")["id"] == "p-1"
    assert store.search_product(" SKU-1 ")["id"] == "p-1"
    assert store.search_product("") is None
    assert store.search_product("nothing") is None


def test_stats(store):
    from wms.utils import utc_now_iso

    store.products.reset([make_product(id="p-1", stock=5), make_product(id="p-2", barcode="B", stock=50)])
    store.transactions.reset(
        [
            {"id": "t-1", "type": "INBOUND", "timestamp": utc_now_iso()},
            {"id": "t-2", "type": "OUTBOUND", "timestamp": utc_now_iso()},
            {"id": "t-3", "type": "INBOUND", "timestamp": "2001-01-01T00:00:00+00:00"},
        ]
    )
    assert store.stats == {
        "total_products": 2,
        "low_stock_items": 1,
        "total_inbound_today": 1,
        "total_outbound_today": 1,
    }


def test_overlapping_updates_reconcile_in_submission_order(remote, store):
    product = make_product(id="p-1", stock=10)
    store.products.reset([product])
    table = remote.table("products")
    table.seed(product)

    async def scenario():
        table.hold = asyncio.Event()
        first = asyncio.create_task(store.update_product({"id": "p-1", "stock": 5}))
        second = asyncio.create_task(store.update_product({"id": "p-1", "stock": 7}))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        # both applied locally, only the first write reached the backend
        assert store.products.get("p-1")["stock"] == 7
        assert table.count("update") == 1
        table.hold.set()
        return await asyncio.gather(first, second)

    first, second = asyncio.run(scenario())

    assert first.outcome is MutationOutcome.CONFIRMED
    assert second.outcome is MutationOutcome.CONFIRMED
    assert [payload[1]["stock"] for op, payload in table.calls if op == "update"] == [5, 7]
    assert store.products.get("p-1")["stock"] == 7
    assert table.rows["p-1"]["stock"] == 7


def test_row_locks_are_released_after_writes(remote, store, rejected):
    store.products.reset([make_product(id="p-1"), make_product(id="p-2", barcode="B2")])
    remote.table("products").fail("delete", rejected)

    async def scenario():
        await asyncio.gather(
            store.update_product({"id": "p-1", "stock": 1}),
            store.update_product({"id": "p-1", "stock": 2}),
            store.delete_product("p-2"),
        )

    asyncio.run(scenario())

    assert store._locks == {}
    assert store._lock_users == {}


def test_acting_as_scopes_the_actor_to_the_block(store):
    store.current_user = make_actor("MANAGER", name="Pim")
    store.products.reset([make_product(id="p-1")])

    async def scenario():
        with store.acting_as(make_actor("ADMIN", name="Nok")):
            await store.update_product({"id": "p-1", "stock": 3})
            assert store.current_user.name == "Nok"

    asyncio.run(scenario())

    assert store.products.get("p-1")["updated_by"] == "Nok"
    assert store.current_user.name == "Pim"
