"""Slow request work must not stall the event loop for other requests."""
import asyncio

import httpx
import pytest
from fastapi import status

PASSWORD = "correct-horse"
TICK = 0.005
MAX_STALL = 0.04


async def _heartbeat(gaps, stop):
    loop = asyncio.get_running_loop()
    last = loop.time()
    while not stop.is_set():
        await asyncio.sleep(TICK)
        now = loop.time()
        gaps.append(now - last)
        last = now


async def _while_beating(work):
    gaps, stop = [], asyncio.Event()
    beat = asyncio.create_task(_heartbeat(gaps, stop))
    try:
        result = await work()
    finally:
        stop.set()
        await beat
    return result, max(gaps)


def _async_client():
    from homework_api.main import app

    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_login_hashing_keeps_loop_responsive(client, teacher):
    async def logins():
        async with _async_client() as http:
            return [
                await http.post("/api/login", json={"email": teacher.email, "password": PASSWORD})
                for _ in range(3)
            ]

    responses, stall = await _while_beating(logins)

    assert [r.status_code for r in responses] == [status.HTTP_200_OK] * 3
    assert stall < MAX_STALL


@pytest.mark.asyncio
async def test_register_hashing_keeps_loop_responsive(client):
    async def registrations():
        async with _async_client() as http:
            return [
                await http.post("/api/register", json={
                    "email": f"new{i}@example.com",
                    "name": f"New User {i}",
                    "password": PASSWORD,
                })
                for i in range(3)
            ]

    responses, stall = await _while_beating(registrations)

    assert all(r.status_code == status.HTTP_201_CREATED for r in responses)
    assert stall < MAX_STALL


@pytest.mark.asyncio
async def test_review_keeps_loop_responsive(client, processor, db_session, admin, enrolled_student,
                                            assignment, png_bytes, auth_headers):
    headers = auth_headers(admin)

    async def upload_then_review():
        async with _async_client() as http:
            created = await http.post(
                "/api/submissions/upload",
                files={"file": ("homework.png", png_bytes, "image/png")},
                data={"assignmentId": str(assignment.id), "studentId": str(enrolled_student.id)},
                headers=headers,
            )
            assert created.status_code == status.HTTP_201_CREATED
            return await http.post(f"/api/submissions/{assignment.id}/review", headers=headers)

    response, stall = await _while_beating(upload_then_review)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["processed"] == 1
    assert stall < MAX_STALL
