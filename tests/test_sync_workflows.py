import asyncio

from wms.rbac import MODULE_KEYS, PermissionObject, check_permission
from wms.sync import MutationOutcome

from conftest import make_actor, make_product


def _adjustment_item(product, actual):
    return {
        "product_id": product["id"],
        "product_name": product["name"],
        "sku": product["sku"],
        "current_stock": product["stock"],
        "actual_stock": actual,
        "adjustment_qty": actual - product["stock"],
        "reason": "Cycle count",
    }


# ── Adjustment bills ─────────────────────────────────────────────


def test_approving_a_bill_applies_stock_once(remote, store):
    product = make_product(id="p-1", stock=10)
    store.products.reset([product])
    remote.table("products").seed(product)
    store.current_user = make_actor("MANAGER", name="Pim")

    async def scenario():
        created = await store.create_adjustment_bill([_adjustment_item(product, 7)], note="Aisle 3")
        bill_id = created.data["id"]
        first = await store.approve_adjustment_bill(bill_id)
        second = await store.approve_adjustment_bill(bill_id)
        return created, first, second

    created, first, second = asyncio.run(scenario())

    assert created.data["serial_number"].startswith("ADJ-")
    assert created.data["status"] == "PENDING"
    assert first.outcome is MutationOutcome.CONFIRMED
    assert second.outcome is MutationOutcome.NOOP

    bill = store.adjustment_bills.get(created.data["id"])
    assert bill["status"] == "APPROVED"
    assert bill["reviewed_by"] == "Pim"
    assert store.products.get("p-1")["stock"] == 7

    [tx] = store.transactions.all()
    assert tx["type"] == "OUTBOUND"
    assert tx["quantity"] == 3
    assert tx["reference_id"] == f"Adjustment {bill['serial_number']}"


def test_rejecting_a_bill_leaves_stock(remote, store):
    product = make_product(id="p-1", stock=10)
    store.products.reset([product])

    async def scenario():
        created = await store.create_adjustment_bill([_adjustment_item(product, 2)])
        rejected = await store.reject_adjustment_bill(created.data["id"])
        approved = await store.approve_adjustment_bill(created.data["id"])
        return rejected, approved

    rejected, approved = asyncio.run(scenario())

    assert rejected.outcome is MutationOutcome.CONFIRMED
    assert approved.outcome is MutationOutcome.NOOP
    assert store.products.get("p-1")["stock"] == 10
    assert len(store.transactions) == 0


def test_bill_created_approved_is_applied_immediately(store):
    product = make_product(id="p-1", stock=10)
    store.products.reset([product])

    result = asyncio.run(store.create_adjustment_bill([_adjustment_item(product, 15)], status="APPROVED"))

    assert result.data["reviewed_at"]
    assert store.products.get("p-1")["stock"] == 15
    assert store.transactions.all()[0]["type"] == "INBOUND"


def test_failed_approval_applies_nothing(remote, store, rejected):
    product = make_product(id="p-1", stock=10)
    store.products.reset([product])

    async def scenario():
        created = await store.create_adjustment_bill([_adjustment_item(product, 1)])
        remote.table("adjustment_bills").fail("update", rejected)
        return created, await store.approve_adjustment_bill(created.data["id"])

    created, result = asyncio.run(scenario())

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert store.adjustment_bills.get(created.data["id"])["status"] == "PENDING"
    assert store.products.get("p-1")["stock"] == 10


def test_approve_unknown_bill(store):
    assert asyncio.run(store.approve_adjustment_bill("nope")).missing


# ── Tasks ────────────────────────────────────────────────────────


def test_task_lifecycle(remote, store):
    async def scenario():
        added = await store.add_task("Count aisle 4", due_date="2026-10-20")
        toggled = await store.toggle_task_completion(added.data["id"])
        return added, toggled

    added, toggled = asyncio.run(scenario())

    assert added.data["priority"] == "MEDIUM"
    assert toggled.data["is_completed"] is True
    assert remote.table("tasks").rows[added.data["id"]]["is_completed"] is True

    assert asyncio.run(store.delete_task(added.data["id"])).ok
    assert len(store.tasks) == 0


def test_failed_toggle_rolls_back(remote, store, rejected):
    store.tasks.reset([{"id": "t-1", "title": "Count", "is_completed": False}])
    remote.table("tasks").fail("update", rejected)

    asyncio.run(store.toggle_task_completion("t-1"))
    assert store.tasks.get("t-1")["is_completed"] is False


# ── Warehouses ───────────────────────────────────────────────────


def test_warehouse_type_drives_main_flag(store):
    async def scenario():
        main = await store.add_warehouse({"name": "Bangkok DC", "code": "BKK", "type": "MAIN"})
        branch = await store.add_warehouse({"name": "Chiang Mai", "code": "CNX"})
        flagged = await store.add_warehouse({"name": "Old DC", "code": "OLD", "is_main": True})
        return main.data, branch.data, flagged.data

    main, branch, flagged = asyncio.run(scenario())

    assert main["is_main"] is True and main["status"] == "ACTIVE"
    assert branch["type"] == "BRANCH" and branch["is_main"] is False
    assert flagged["type"] == "MAIN" and flagged["is_main"] is True

    updated = asyncio.run(store.update_warehouse(main["id"], {"type": "TRANSFER"}))
    assert updated.data["is_main"] is False


# ── Receiving orders ─────────────────────────────────────────────


def test_receiving_order_approval(remote, store):
    store.current_user = make_actor("MANAGER", name="Pim")

    async def scenario():
        added = await store.add_receiving_order({"receiving_serial": "RCV-1", "supplier_name": "Siam Foods"})
        approved = await store.approve_receiving_order(added.data["id"])
        again = await store.approve_receiving_order(added.data["id"])
        return added, approved, again

    added, approved, again = asyncio.run(scenario())

    assert added.data["review_status"] == "PENDING"
    assert added.data["creator"] == "Pim"
    assert approved.data["review_status"] == "APPROVED"
    assert approved.data["order_status"] == "Received"
    assert approved.data["reviewer"] == "Pim"
    assert again.outcome is MutationOutcome.NOOP


def test_bulk_import_receiving_orders(remote, store, rejected):
    result = asyncio.run(
        store.bulk_import_receiving_orders([{"receiving_serial": "R-1"}, {"receiving_serial": "R-2"}])
    )
    assert result.outcome is MutationOutcome.CONFIRMED
    assert len(store.receiving_orders) == 2
    assert len(remote.table("receiving_orders").rows) == 2

    remote.table("receiving_orders").fail("upsert", rejected)
    failed = asyncio.run(store.bulk_import_receiving_orders([{"receiving_serial": "R-3"}]))
    assert failed.outcome is MutationOutcome.ROLLED_BACK
    assert len(store.receiving_orders) == 2


# ── Users ────────────────────────────────────────────────────────


def test_update_user_patches_current_actor(remote, store):
    actor = make_actor("MANAGER", id="u-1")
    store.users.reset([actor.model_dump(mode="json")])
    remote.table("user_profiles").seed(actor.model_dump(mode="json"))
    store.current_user = actor

    result = asyncio.run(store.update_user({"id": "u-1", "phone": "081-000-0000"}))

    assert result.ok
    assert store.current_user.phone == "081-000-0000"
    assert store.users.get("u-1")["phone"] == "081-000-0000"


def test_failed_user_update_restores_current_actor(remote, store, rejected):
    actor = make_actor("MANAGER", id="u-1")
    store.users.reset([actor.model_dump(mode="json")])
    store.current_user = actor
    remote.table("user_profiles").fail("update", rejected)

    asyncio.run(store.update_user({"id": "u-1", "role": "ADMIN"}))

    assert store.current_user.role == "MANAGER"
    assert store.users.get("u-1")["role"] == "MANAGER"


def test_add_user_never_stores_password(remote, store):
    result = asyncio.run(store.add_user({"name": "Dao", "username": "dao", "role": "USER", "password": "x"}))
    row = remote.table("user_profiles").rows[result.data["id"]]
    assert "password" not in row
    assert row["status"] == "Active"


def test_notification_settings(remote, store):
    actor = make_actor("USER", id="u-1")
    store.users.reset([actor.model_dump(mode="json")])
    store.current_user = actor

    result = asyncio.run(store.update_notification_settings({"alert_timing": 10, "sound_type": "chime"}))

    assert result.ok
    assert store.current_user.notification_settings.sound_type == "chime"


# ── Roles ────────────────────────────────────────────────────────


def test_update_role_config_persists_and_audits(remote, store):
    store.current_user = make_actor("ADMIN")
    config = store.role_configs.get("USER")
    objects = dict(config.objects)
    objects["INVENTORY_PRODUCT"] = PermissionObject(read=True)

    result = asyncio.run(store.update_role_config("USER", config.model_copy(update={"objects": objects})))

    assert result.outcome is MutationOutcome.CONFIRMED
    assert store.role_configs.get("USER").objects["INVENTORY_PRODUCT"].read is True
    row = remote.table("role_configs").rows["USER"]
    assert row["config"]["objects"]["INVENTORY_PRODUCT"]["read"] is True
    [entry] = remote.table("audit_logs").rows.values()
    assert entry["changed_fields"] == ["objects"]


def test_partial_role_config_keeps_default_grants(remote, store):
    store.current_user = make_actor("ADMIN")

    result = asyncio.run(store.update_role_config("MANAGER", {"objects": {"DASHBOARD": {"read": True}}}))

    assert result.outcome is MutationOutcome.CONFIRMED
    assert check_permission(make_actor("MANAGER"), store.role_configs, "INVENTORY_QUERY", "read")
    stored = remote.table("role_configs").rows["MANAGER"]["config"]
    assert set(stored["objects"]) == set(MODULE_KEYS)
    assert stored["actions"]["approve_adjustments"] is True


def test_admin_cannot_drop_its_own_settings_access(store):
    asyncio.run(store.update_role_config("ADMIN", {"objects": {"DASHBOARD": {"read": True}}, "actions": {}}))

    assert store.role_configs.get("ADMIN").actions["manage_settings"] is True
    assert check_permission(make_actor("ADMIN"), store.role_configs, "SETTINGS", "special", "manage_settings")


def test_failed_role_update_restores_previous(remote, store, rejected):
    before = store.role_configs.get("MANAGER")
    remote.table("role_configs").fail("upsert", rejected)

    result = asyncio.run(store.update_role_config("MANAGER", {"objects": {}, "actions": {}}))

    assert result.outcome is MutationOutcome.ROLLED_BACK
    assert store.role_configs.get("MANAGER") is before


def test_add_role_from_user_template(store):
    result = asyncio.run(store.add_role("PACKER", "Packs outbound parcels"))

    assert result.ok
    config = store.role_configs.get("PACKER")
    assert config.metadata.is_custom is True
    assert config.metadata.color == "bg-indigo-600"
    assert config.metadata.description == "Packs outbound parcels"
    assert config.objects == store.role_configs.get("USER").objects

    duplicate = asyncio.run(store.add_role("PACKER", "again"))
    assert duplicate.outcome is MutationOutcome.REJECTED


# ── Loading ──────────────────────────────────────────────────────


def test_refresh_loads_tables_and_merges_roles(remote, store):
    remote.table("products").seed(make_product(id="p-1"))
    remote.table("transactions").seed(
        {"id": "t-old", "timestamp": "2026-01-01T00:00:00+00:00"},
        {"id": "t-new", "timestamp": "2026-06-01T00:00:00+00:00"},
    )
    remote.table("role_configs").seed(
        {"id": "USER", "role": "USER", "config": {"objects": {"SETTINGS": {"read": True}}}}
    )

    assert asyncio.run(store.refresh()) is True
    assert [t["id"] for t in store.transactions] == ["t-new", "t-old"]
    assert "p-1" in store.products
    assert store.role_configs.get("USER").objects["SETTINGS"].read is True
    assert store.role_configs.get("USER").objects["INVENTORY_PRODUCT"].read is False


def test_refresh_offline_keeps_state(remote, store, offline):
    store.products.reset([make_product(id="p-1")])
    remote.fail_everything(offline)

    assert asyncio.run(store.refresh()) is False
    assert "p-1" in store.products
    assert "ADMIN" in store.role_configs
