from services.cart_service.main import cart_app


async def test_clear_removes_only_selected_variants(service_client):
    client = service_client(cart_app)
    for variant_id in (1001, 1002, 1003):
        await client.post("/42/items", json={"variant_id": variant_id, "quantity": 1})
    await client.post("/7/items", json={"variant_id": 1001, "quantity": 1})

    resp = await client.post("/42/items/clear", json={"variant_ids": [1001, 1003, 9999]})

    assert resp.status_code == 204
    assert [i["variant_id"] for i in (await client.get("/42")).json()["items"]] == [1002]
    assert [i["variant_id"] for i in (await client.get("/7")).json()["items"]] == [1001]


async def test_adding_same_variant_accumulates(service_client):
    client = service_client(cart_app)
    await client.post("/42/items", json={"variant_id": 1001, "quantity": 1})
    body = (await client.post("/42/items", json={"variant_id": 1001, "quantity": 2})).json()
    assert body["items"] == [{"variant_id": 1001, "quantity": 3}]
