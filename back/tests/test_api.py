from datetime import datetime, timezone

from conftest import login_headers, superuser_headers

BASE = "/re-registration"


def create(client, headers, **fields):
    payload = {"member_name": "김민수", "remaining_sessions": 8, "total_sessions": 10}
    payload.update(fields)
    response = client.post(f"{BASE}/consultations", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_authentication(client):
    response = client.get(f"{BASE}/consultations")
    assert response.status_code in (401, 403)


def test_invalid_token(client):
    response = client.get(f"{BASE}/consultations", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_INVALID_TOKEN"


def test_register_login_me(client):
    headers = login_headers(client, "manager_lee", role="admin", gym_id="hongdae")

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "admin"
    assert body["gym_id"] == "hongdae"


def test_duplicate_username(client, staff_headers):
    response = client.post(
        "/auth/register",
        json={"email": "other@fitstudio.kr", "username": "trainer_kim", "password": "secret123"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "AUTH_USERNAME_TAKEN"


def test_self_registration_ignores_role_and_gym(client):
    response = client.post(
        "/auth/register",
        json={
            "email": "intruder@fitstudio.kr",
            "username": "intruder",
            "password": "secret123",
            "role": "admin",
            "gym_id": "gangnam",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "staff"
    assert body["gym_id"] is None
    assert body["is_superuser"] is False


def test_only_superuser_assigns_access(client, staff_headers):
    me = client.get("/auth/me", headers=staff_headers).json()

    response = client.patch(f"/auth/users/{me['id']}", json={"role": "admin"}, headers=staff_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "AUTH_SUPERUSER_REQUIRED"

    response = client.patch("/auth/users/9999", json={"role": "admin"}, headers=superuser_headers(client))
    assert response.status_code == 404

    response = client.patch(f"/auth/users/{me['id']}", json={"gym_id": None}, headers=superuser_headers(client))
    assert response.status_code == 200
    assert response.json()["role"] == "staff"
    assert response.json()["gym_id"] is None


def test_create_and_get_consultation(client, staff_headers):
    created = create(client, staff_headers)

    assert created["progress_percentage"] == 80
    assert created["current_stage"] == 1
    assert [c["stage"] for c in created["stage_checklists"]] == [1, 2, 3, 4, 5]

    response = client.get(f"{BASE}/consultations/{created['id']}", headers=staff_headers)
    assert response.status_code == 200
    assert response.json() == created


def test_client_cannot_set_stage(client, staff_headers):
    created = create(client, staff_headers, progress_percentage=20, current_stage=1)
    assert created["current_stage"] == 4


def test_create_requires_member_name(client, staff_headers):
    response = client.post(f"{BASE}/consultations", json={"member_name": ""}, headers=staff_headers)

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_FAILED"
    assert body["details"]["issues"][0]["field"] == "member_name"


def test_validate_endpoint(client):
    response = client.post(f"{BASE}/consultations/validate", json={"member_name": "", "consultation_date": "2026-03-10"})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert body["completion_rate"] == 13


def test_update_progress_to_zero(client, staff_headers):
    created = create(client, staff_headers)

    response = client.patch(
        f"{BASE}/consultations/{created['id']}",
        json={"progress_percentage": 0},
        headers=staff_headers,
    )

    assert response.status_code == 200
    assert response.json()["current_stage"] == 5


def test_patch_single_stage_checklist_keeps_the_rest(client, staff_headers):
    created = create(client, staff_headers, progress_percentage=5)
    url = f"{BASE}/consultations/{created['id']}"
    client.put(f"{url}/outcome", json={"outcome": "paused"}, headers=staff_headers)
    client.put(f"{url}/checklists/5/items/pause_period", json={"checked": True}, headers=staff_headers)
    client.put(f"{url}/checklists/3/memo", json={"memo": "인바디 비교"}, headers=staff_headers)

    response = client.patch(
        url,
        json={"stage_checklists": [{"stage": 1, "memo": "로드맵 공유 완료", "items": {"roadmap_shared": True}}]},
        headers=staff_headers,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    checklists = body["stage_checklists"]
    assert [c["stage"] for c in checklists] == [1, 2, 3, 4, 5]
    assert checklists[0]["memo"] == "로드맵 공유 완료"
    assert checklists[0]["items"]["roadmap_shared"] is True
    assert checklists[2]["memo"] == "인바디 비교"
    assert checklists[4]["outcome"] == "paused"
    assert checklists[4]["items"]["pause_period"] is True
    assert body["final_outcome"] == "paused"


def test_update_rejects_remaining_over_total(client, staff_headers):
    created = create(client, staff_headers)

    response = client.patch(
        f"{BASE}/consultations/{created['id']}",
        json={"remaining_sessions": 15},
        headers=staff_headers,
    )

    assert response.status_code == 422
    assert response.json()["details"]["issues"][0]["code"] == "EXCEEDS_TOTAL"


def test_delete_consultation(client, staff_headers):
    created = create(client, staff_headers)

    assert client.delete(f"{BASE}/consultations/{created['id']}", headers=staff_headers).status_code == 204

    response = client.get(f"{BASE}/consultations/{created['id']}", headers=staff_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "CONSULTATION_NOT_FOUND"
    assert client.delete(f"{BASE}/consultations/{created['id']}", headers=staff_headers).status_code == 404


def test_target_members(client, staff_headers):
    create(client, staff_headers, member_name="A", progress_percentage=90)
    create(client, staff_headers, member_name="B", progress_percentage=75)
    create(client, staff_headers, member_name="C", progress_percentage=40)

    response = client.get(f"{BASE}/consultations/targets", headers=staff_headers)

    assert response.status_code == 200
    assert [c["member_name"] for c in response.json()["consultations"]] == ["B", "A"]


def test_checklist_and_outcome_flow(client, staff_headers):
    created = create(client, staff_headers, progress_percentage=5)
    url = f"{BASE}/consultations/{created['id']}"

    response = client.put(f"{url}/checklists/5/items/pause_period", json={"checked": True}, headers=staff_headers)
    assert response.status_code == 422
    assert response.json()["details"]["issues"][0]["code"] == "OUTCOME_REQUIRED"

    response = client.put(f"{url}/outcome", json={"outcome": "paused"}, headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["final_outcome"] == "paused"

    response = client.put(f"{url}/checklists/5/items/pause_period", json={"checked": True}, headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["stage_checklists"][4]["items"]["pause_period"] is True

    response = client.put(f"{url}/checklists/2/memo", json={"memo": "만족도 높음"}, headers=staff_headers)
    assert response.json()["stage_checklists"][1]["memo"] == "만족도 높음"

    response = client.get(f"{url}/completion", headers=staff_headers)
    stages = response.json()["stages"]
    assert stages[4]["completed"] == 1
    assert stages[4]["total"] == 3


def test_checklist_unknown_stage(client, staff_headers):
    created = create(client, staff_headers)

    response = client.put(
        f"{BASE}/consultations/{created['id']}/checklists/7/items/roadmap_shared",
        json={"checked": True},
        headers=staff_headers,
    )

    assert response.status_code == 422
    assert response.json()["code"] == "REQUEST_VALIDATION_ERROR"


def test_concern_factors_patch(client, staff_headers):
    created = create(client, staff_headers)

    response = client.patch(
        f"{BASE}/consultations/{created['id']}/concerns",
        json={"cost": True, "other_text": "연봉 협상 중"},
        headers=staff_headers,
    )

    factors = response.json()["concern_factors"]
    assert factors["cost"] is True
    assert factors["time"] is False
    assert factors["other_text"] == "연봉 협상 중"


def test_monthly_stats(client, staff_headers):
    created = create(client, staff_headers)
    client.put(f"{BASE}/consultations/{created['id']}/outcome", json={"outcome": "re_registered"}, headers=staff_headers)
    create(client, staff_headers)
    month = datetime.now(timezone.utc).strftime("%Y-%m")

    response = client.get(f"{BASE}/stats/monthly", params={"month": month}, headers=staff_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["target_count"] == 2
    assert body["re_registered_count"] == 1
    assert body["re_registration_rate"] == 50

    assert client.get(f"{BASE}/stats/current", headers=staff_headers).json() == body


def test_monthly_stats_empty_and_bad_month(client, staff_headers):
    response = client.get(f"{BASE}/stats/monthly", params={"month": "2020-01"}, headers=staff_headers)
    assert response.json()["re_registration_rate"] == 0

    response = client.get(f"{BASE}/stats/monthly", params={"month": "2020-13"}, headers=staff_headers)
    assert response.status_code == 422


def test_staff_data_is_partitioned(client, staff_headers):
    create(client, staff_headers)
    other_staff = login_headers(client, "trainer_park")
    admin = login_headers(client, "manager_choi", role="admin")

    assert client.get(f"{BASE}/consultations", headers=other_staff).json()["total"] == 0
    assert client.get(f"{BASE}/consultations", headers=admin).json()["total"] == 0
    assert client.get(f"{BASE}/consultations", headers=staff_headers).json()["total"] == 1


def test_admins_share_gym_slot(client):
    first = login_headers(client, "manager_choi", role="admin")
    second = login_headers(client, "manager_yoon", role="admin")
    create(client, first)

    assert client.get(f"{BASE}/consultations", headers=second).json()["total"] == 1
    assert client.get(f"{BASE}/consultations", params={"gym_id": "gangnam"}, headers=second).json()["total"] == 1


def test_staff_cannot_read_other_gym(client, staff_headers):
    response = client.get(f"{BASE}/consultations", params={"gym_id": "hongdae"}, headers=staff_headers)

    assert response.status_code == 403
    assert response.json()["code"] == "GYM_ACCESS_DENIED"


def test_admin_cannot_touch_other_gym(client):
    gangnam_admin = login_headers(client, "manager_choi", role="admin", gym_id="gangnam")
    hongdae_admin = login_headers(client, "manager_yoon", role="admin", gym_id="hongdae")
    create(client, gangnam_admin)

    response = client.get(f"{BASE}/consultations", params={"gym_id": "gangnam"}, headers=hongdae_admin)
    assert response.status_code == 403
    assert response.json()["code"] == "GYM_ACCESS_DENIED"

    response = client.delete(f"{BASE}/data", params={"gym_id": "gangnam"}, headers=hongdae_admin)
    assert response.status_code == 403
    assert client.get(f"{BASE}/consultations", headers=gangnam_admin).json()["total"] == 1


def test_operator_without_gym_cannot_pick_one(client):
    response = client.post(
        "/auth/register",
        json={"email": "new@fitstudio.kr", "username": "newcomer", "password": "secret123"},
    )
    assert response.status_code == 201
    login = client.post("/auth/login", json={"username": "newcomer", "password": "secret123"})
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    response = client.get(f"{BASE}/consultations", params={"gym_id": "gangnam"}, headers=headers)
    assert response.status_code == 403


def test_superuser_can_select_any_gym(client):
    admin = login_headers(client, "manager_choi", role="admin", gym_id="gangnam")
    create(client, admin)

    response = client.get(f"{BASE}/consultations", params={"gym_id": "gangnam"}, headers=superuser_headers(client))

    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_weekly_routine(client, staff_headers):
    response = client.patch(
        f"{BASE}/weekly-routines/2026-03-09",
        json={"monday_tasks": {"check_target_view": True, "prepare_data": True}},
        headers=staff_headers,
    )
    assert response.status_code == 200
    assert response.json()["monday_completion"] == 50

    response = client.get(f"{BASE}/weekly-routines/2026-03-09", headers=staff_headers)
    assert response.json()["exists"] is True
    assert response.json()["monday_tasks"]["prepare_data"] is True

    response = client.get(f"{BASE}/weekly-routines/2026-03-10", headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "WEEK_START_NOT_MONDAY"

    response = client.get(f"{BASE}/weekly-routines/current", headers=staff_headers)
    assert response.status_code == 200


def test_scripts(client):
    body = client.get(f"{BASE}/scripts").json()
    assert set(body["recommended_scripts"]) == {"stage1", "stage2", "stage3", "stage4", "stage5_terminated"}
    assert body["concern_labels"]["cost"] == "비용 부담"


def test_reset_data(client, staff_headers):
    create(client, staff_headers)

    assert client.delete(f"{BASE}/data", headers=staff_headers).status_code == 204
    assert client.get(f"{BASE}/consultations", headers=staff_headers).json()["total"] == 0


def test_metrics_exposed(client):
    assert client.get("/metrics").status_code == 200
