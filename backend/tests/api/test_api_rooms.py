"""
房间管理 API 单元测试
覆盖 /rooms 端点的所有功能
"""
import pytest
from fastapi.testclient import TestClient


class TestRoomInventory:
    """房间库存"""

    def test_list_rooms(self, client: TestClient, receptionist_auth_headers, sample_rooms):
        response = client.get("/rooms", headers=receptionist_auth_headers)

        assert response.status_code == 200
        assert [r["number"] for r in response.json()] == ["101", "102", "201"]

    def test_list_rooms_by_type(self, client: TestClient, receptionist_auth_headers, sample_rooms):
        response = client.get("/rooms", headers=receptionist_auth_headers, params={"room_type": "suite"})

        assert [r["number"] for r in response.json()] == ["201"]

    def test_list_rooms_requires_staff(self, client: TestClient, guest_auth_headers, sample_rooms):
        response = client.get("/rooms", headers=guest_auth_headers)
        assert response.status_code == 403

    def test_requires_token(self, client: TestClient):
        response = client.get("/rooms")
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client: TestClient):
        response = client.get("/rooms", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_get_room(self, client: TestClient, receptionist_auth_headers, room_101):
        response = client.get(f"/rooms/{room_101.id}", headers=receptionist_auth_headers)

        assert response.status_code == 200
        assert response.json()["room_type"] == "double"

    def test_get_missing_room(self, client: TestClient, receptionist_auth_headers):
        response = client.get("/rooms/999", headers=receptionist_auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"


class TestRoomManagement:
    """管理员与清洁员修改房间"""

    def test_admin_creates_room(self, client: TestClient, admin_auth_headers):
        response = client.post("/rooms", headers=admin_auth_headers, json={
            "number": "301", "room_type": "suite", "price": "800000"
        })

        assert response.status_code == 201
        data = response.json()
        assert data["number"] == "301"
        assert data["status"] == "available"

    def test_receptionist_cannot_create_room(self, client: TestClient, receptionist_auth_headers):
        response = client.post("/rooms", headers=receptionist_auth_headers, json={
            "number": "301", "room_type": "suite", "price": "800000"
        })
        assert response.status_code == 403

    def test_duplicate_room(self, client: TestClient, admin_auth_headers, room_101):
        response = client.post("/rooms", headers=admin_auth_headers, json={
            "number": "101", "room_type": "single", "price": "1"
        })

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_cleaner_marks_room_cleaning(self, client: TestClient, cleaner_auth_headers, db_session, room_101):
        response = client.patch(f"/rooms/{room_101.id}", headers=cleaner_auth_headers, json={"status": "dirty"})
        assert response.status_code == 200

        response = client.patch(f"/rooms/{room_101.id}", headers=cleaner_auth_headers, json={"status": "cleaning"})
        assert response.status_code == 200
        assert response.json()["status"] == "cleaning"

    def test_cleaner_cannot_change_price(self, client: TestClient, cleaner_auth_headers, room_101):
        response = client.patch(f"/rooms/{room_101.id}", headers=cleaner_auth_headers, json={"price": "1"})
        assert response.status_code == 403

    def test_cleaner_cannot_set_maintenance(self, client: TestClient, cleaner_auth_headers,
                                            admin_auth_headers, room_101):
        response = client.patch(f"/rooms/{room_101.id}", headers=cleaner_auth_headers, json={"status": "maintenance"})
        assert response.status_code == 403

        room = client.get(f"/rooms/{room_101.id}", headers=admin_auth_headers).json()
        assert room["status"] == "available"

        response = client.patch(f"/rooms/{room_101.id}", headers=admin_auth_headers, json={"status": "maintenance"})
        assert response.status_code == 200

    def test_manual_occupied_rejected(self, client: TestClient, admin_auth_headers, room_101):
        response = client.patch(f"/rooms/{room_101.id}", headers=admin_auth_headers, json={"status": "occupied"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"


class TestAvailability:
    """日期区间可用性"""

    @pytest.fixture
    def booked_101(self, client: TestClient, receptionist_auth_headers, sample_rooms):
        response = client.post("/bookings", headers=receptionist_auth_headers, json={
            "room_id": sample_rooms[0].id, "guest_name": "张三",
            "check_in_date": "2026-03-10", "check_out_date": "2026-03-12",
        })
        assert response.status_code == 201
        return response.json()

    def test_available_mode(self, client: TestClient, guest_auth_headers, booked_101):
        response = client.get("/rooms/availability", headers=guest_auth_headers, params={
            "check_in_date": "2026-03-11", "check_out_date": "2026-03-13",
        })

        assert response.status_code == 200
        assert [r["number"] for r in response.json()] == ["102", "201"]

    def test_all_mode(self, client: TestClient, guest_auth_headers, booked_101):
        response = client.get("/rooms/availability", headers=guest_auth_headers, params={
            "check_in_date": "2026-03-11", "check_out_date": "2026-03-13", "mode": "all",
        })

        flags = {r["number"]: r["is_available"] for r in response.json()}
        assert flags == {"101": False, "102": True, "201": True}

    def test_turnover(self, client: TestClient, receptionist_auth_headers, booked_101):
        response = client.get("/rooms/availability", headers=receptionist_auth_headers, params={
            "check_in_date": "2026-03-12", "check_out_date": "2026-03-14",
        })

        assert "101" in [r["number"] for r in response.json()]

    def test_invalid_range(self, client: TestClient, guest_auth_headers, sample_rooms):
        response = client.get("/rooms/availability", headers=guest_auth_headers, params={
            "check_in_date": "2026-03-12", "check_out_date": "2026-03-12",
        })

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_malformed_date(self, client: TestClient, guest_auth_headers):
        response = client.get("/rooms/availability", headers=guest_auth_headers, params={
            "check_in_date": "03/12/2026", "check_out_date": "2026-03-14",
        })
        assert response.status_code == 422
