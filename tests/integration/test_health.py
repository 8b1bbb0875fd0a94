from fastapi import status


async def test_health_reports_dependencies(client, mock_redis):
    response = await client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "healthy",
        "dependencies": {"database": "ok", "redis": "ok"},
    }
    mock_redis.ping.assert_awaited_once()


async def test_responses_carry_tracing_and_security_headers(client):
    response = await client.get("/api/guest/pharmacies")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert len(response.headers["X-Request-Id"]) == 36


async def test_unknown_route_uses_message_envelope(client):
    response = await client.get("/api/nowhere")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Not Found"}
