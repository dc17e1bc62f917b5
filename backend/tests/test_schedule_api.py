from app.services.generation_lock import term_generation_lock


def register_user(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    return response.json()


def login_user(client, email, password, role):
    response = client.post(
        "/api/auth/login",
        json={"email": email, "password": password, "role": role},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


def _headers(client, role="admin"):
    payload = {
        "name": f"{role.title()} User",
        "email": f"{role}@example.com",
        "password": "password123",
        "role": role,
    }
    register_user(client, payload)
    token = login_user(client, payload["email"], payload["password"], role)
    return {"Authorization": f"Bearer {token}"}


def _post(client, headers, path, payload):
    response = client.post(path, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _clock(minutes):
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def build_school(client, headers, *, with_curriculum=True):
    year = _post(
        client,
        headers,
        "/api/academic-years",
        {"name": "2026-2027", "start_date": "2026-09-01", "end_date": "2027-05-31"},
    )
    term = _post(
        client,
        headers,
        "/api/academic-terms",
        {"academic_year_id": year["id"], "name": "HK1", "start_date": "2026-09-01", "end_date": "2027-01-15"},
    )
    grade = _post(client, headers, "/api/grade-levels", {"level": 10, "name": "Khối 10"})
    school_class = _post(
        client,
        headers,
        "/api/classes",
        {"academic_year_id": year["id"], "grade_level_id": grade["id"], "name": "10A1", "room_number": "P101"},
    )
    second_class = _post(
        client,
        headers,
        "/api/classes",
        {"academic_year_id": year["id"], "grade_level_id": grade["id"], "name": "10A2", "room_number": "P102"},
    )
    math = _post(client, headers, "/api/subjects", {"code": "math", "name": "Toán"})
    lit = _post(client, headers, "/api/subjects", {"code": "LIT", "name": "Ngữ văn"})
    teacher = _post(client, headers, "/api/teachers", {"full_name": "Nguyen An", "email": "an@school.test"})
    slots = []
    for order in range(1, 9):
        start = 7 * 60 + (order - 1) * 50
        slots.append(
            _post(
                client,
                headers,
                "/api/time-slots",
                {
                    "name": f"Tiết {order}",
                    "start_time": _clock(start),
                    "end_time": _clock(start + 45),
                    "order_index": order,
                    "is_break": order == 5,
                },
            )
        )
    if with_curriculum:
        _post(
            client,
            headers,
            "/api/curriculum-assignments",
            {"academic_term_id": term["id"], "subject_id": math["id"], "weekly_periods": 4},
        )
        _post(
            client,
            headers,
            "/api/curriculum-assignments",
            {
                "academic_term_id": term["id"],
                "subject_id": lit["id"],
                "grade_level_id": grade["id"],
                "weekly_periods": 3,
            },
        )
    for subject in (math, lit):
        _post(
            client,
            headers,
            "/api/teacher-assignments",
            {
                "academic_term_id": term["id"],
                "teacher_id": teacher["id"],
                "class_id": school_class["id"],
                "subject_id": subject["id"],
            },
        )
    return {
        "term": term,
        "class": school_class,
        "second_class": second_class,
        "math": math,
        "lit": lit,
        "teacher": teacher,
        "slots": slots,
    }


def _generate(client, headers, term_id, **settings):
    return client.post(
        "/api/teaching-schedules/generate",
        json={"academic_term_id": term_id, "settings": settings},
        headers=headers,
    )


def test_generate_list_and_coverage(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]

    response = _generate(client, headers, term_id, optimize_workload=True)
    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["message"] == "Tạo thời khóa biểu thành công"
    assert payload["stats"] == {"total_lessons": 7, "classes_scheduled": 1, "teachers_assigned": 1}
    assert len(payload["schedules"]) == 7
    assert payload["state_trace"][-1] == "done"
    first_class = [item for item in payload["coverage"] if item["class_id"] == school["class"]["id"]]
    assert {item["subject_code"]: item["scheduled"] for item in first_class} == {"MATH": 4, "LIT": 3}
    assert all(item["shortfall"] == 0 for item in first_class)
    assert payload["settings_used"]["clear_existing"] is True
    assert "optimize_workload" not in payload["settings_used"]

    listed = client.get("/api/teaching-schedules", params={"academic_term_id": term_id}, headers=headers).json()
    assert len(listed) == 7
    slot_order = {slot["id"]: slot["order_index"] for slot in school["slots"]}
    days = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
    keys = [(days.index(item["day_of_week"]), slot_order[item["time_slot_id"]]) for item in listed]
    assert keys == sorted(keys)
    assert {item["room"] for item in listed} == {"P101"}

    monday = client.get(
        "/api/teaching-schedules",
        params={"academic_term_id": term_id, "day_of_week": "1"},
        headers=headers,
    ).json()
    assert [slot_order[item["time_slot_id"]] for item in monday] == [2, 3]
    by_name = client.get(
        "/api/teaching-schedules",
        params={"academic_term_id": term_id, "day_of_week": "Monday"},
        headers=headers,
    ).json()
    assert by_name == monday

    coverage = client.get(
        "/api/teaching-schedules/coverage", params={"academic_term_id": term_id}, headers=headers
    ).json()
    assert sum(item["scheduled"] for item in coverage["coverage"]) == 7


def test_generation_reports_classes_without_teachers(client):
    headers = _headers(client)
    school = build_school(client, headers)

    payload = _generate(client, headers, school["term"]["id"]).json()

    missing = [item for item in payload["coverage"] if item["class_id"] == school["second_class"]["id"]]
    assert {item["reason"] for item in missing} == {"teacher_missing"}
    assert {item["class_name"] for item in missing} == {"10A2"}
    assert len(payload["shortfalls"]) == 2


def test_generate_without_curriculum_returns_prerequisite_error(client):
    headers = _headers(client)
    school = build_school(client, headers, with_curriculum=False)

    response = _generate(client, headers, school["term"]["id"])

    assert response.status_code == 400
    body = response.json()
    assert body["details"]["prerequisite"] == "curriculum"
    assert body["message"].startswith("Không tìm thấy phân phối chương trình")
    listed = client.get(
        "/api/teaching-schedules", params={"academic_term_id": school["term"]["id"]}, headers=headers
    ).json()
    assert listed == []


def test_existing_schedule_blocks_generation_without_clear(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]
    assert _generate(client, headers, term_id).status_code == 201

    response = _generate(client, headers, term_id, clear_existing=False)

    assert response.status_code == 409
    assert response.json()["details"]["existing_entries"] == 7


def test_generation_in_progress_is_rejected(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]

    with term_generation_lock(term_id):
        assert _generate(client, headers, term_id).status_code == 409
        delete = client.delete("/api/teaching-schedules", params={"academic_term_id": term_id}, headers=headers)
        assert delete.status_code == 409


def test_manual_entry_conflicts(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]
    _generate(client, headers, term_id)
    slot_2 = school["slots"][1]["id"]
    candidate = {
        "academic_term_id": term_id,
        "class_id": school["second_class"]["id"],
        "teacher_id": school["teacher"]["id"],
        "subject_id": school["math"]["id"],
        "time_slot_id": slot_2,
        "day_of_week": 1,
    }

    check = client.post("/api/teaching-schedules/check-conflicts", json=candidate, headers=headers)
    assert check.status_code == 200
    assert check.json() == {"conflicts": ["Teacher already has a class at this time"]}

    rejected = client.post("/api/teaching-schedules", json=candidate, headers=headers)
    assert rejected.status_code == 409
    assert rejected.json()["conflicts"] == ["Teacher already has a class at this time"]

    allowed = client.post("/api/teaching-schedules", json={**candidate, "allow_conflicts": True}, headers=headers)
    assert allowed.status_code == 201
    assert allowed.json()["conflicts"] == ["Teacher already has a class at this time"]
    assert allowed.json()["schedule"]["day_of_week"] == "monday"

    free = client.post(
        "/api/teaching-schedules",
        json={**candidate, "day_of_week": "friday", "time_slot_id": school["slots"][7]["id"]},
        headers=headers,
    )
    assert free.status_code == 201
    assert free.json()["conflicts"] == []

    on_break = client.post(
        "/api/teaching-schedules",
        json={**candidate, "day_of_week": "friday", "time_slot_id": school["slots"][4]["id"]},
        headers=headers,
    )
    assert on_break.status_code == 400

    bad_day = client.post("/api/teaching-schedules", json={**candidate, "day_of_week": 9}, headers=headers)
    assert bad_day.status_code == 422


def test_delete_requires_term_and_removes_entries(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]
    _generate(client, headers, term_id)

    missing = client.delete("/api/teaching-schedules", headers=headers)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Academic term ID is required"

    deleted = client.delete("/api/teaching-schedules", params={"academic_term_id": term_id}, headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] == 7
    assert client.get("/api/teaching-schedules", params={"academic_term_id": term_id}, headers=headers).json() == []

    logs = client.get("/api/activity/logs", params={"academic_term_id": term_id}, headers=headers).json()
    actions = {item["action"] for item in logs}
    assert {"teaching_schedule.generate", "teaching_schedule.delete"} <= actions


def test_schedule_constraints_are_honoured(client):
    headers = _headers(client)
    school = build_school(client, headers)
    term_id = school["term"]["id"]
    first_slot_order = {slot["id"]: slot["order_index"] for slot in school["slots"]}

    invalid = client.post(
        "/api/schedule-constraints",
        json={"constraint_type": "teacher_unavailable", "day_of_week": "tuesday", "time_slot_id": school["slots"][0]["id"]},
        headers=headers,
    )
    assert invalid.status_code == 422

    for slot in school["slots"][:4]:
        _post(
            client,
            headers,
            "/api/schedule-constraints",
            {
                "academic_term_id": term_id,
                "constraint_type": "teacher_unavailable",
                "teacher_id": school["teacher"]["id"],
                "day_of_week": "tuesday",
                "time_slot_id": slot["id"],
            },
        )
    listed = client.get("/api/schedule-constraints", params={"academic_term_id": term_id}, headers=headers).json()
    assert len(listed) == 4

    payload = _generate(client, headers, term_id).json()
    tuesday = [item for item in payload["schedules"] if item["day_of_week"] == "tuesday"]
    assert tuesday
    assert all(first_slot_order[item["time_slot_id"]] > 5 for item in tuesday)


def test_role_permissions(client):
    admin_headers = _headers(client, "admin")
    school = build_school(client, admin_headers)
    student_headers = _headers(client, "student")
    term_id = school["term"]["id"]

    assert _generate(client, student_headers, term_id).status_code == 403
    assert client.post(
        "/api/subjects", json={"code": "PE", "name": "Thể dục"}, headers=student_headers
    ).status_code == 403
    listed = client.get("/api/teaching-schedules", params={"academic_term_id": term_id}, headers=student_headers)
    assert listed.status_code == 200
    assert client.get("/api/teaching-schedules").status_code == 401


def test_catalog_validation(client):
    headers = _headers(client)
    school = build_school(client, headers)

    duplicate_subject = client.post("/api/subjects", json={"code": "Math", "name": "Toán"}, headers=headers)
    assert duplicate_subject.status_code == 409

    duplicate_assignment = client.post(
        "/api/teacher-assignments",
        json={
            "academic_term_id": school["term"]["id"],
            "teacher_id": school["teacher"]["id"],
            "class_id": school["class"]["id"],
            "subject_id": school["math"]["id"],
        },
        headers=headers,
    )
    assert duplicate_assignment.status_code == 409

    both_scopes = client.post(
        "/api/curriculum-assignments",
        json={
            "academic_term_id": school["term"]["id"],
            "subject_id": school["math"]["id"],
            "class_id": school["class"]["id"],
            "grade_level_id": school["class"]["grade_level_id"],
            "weekly_periods": 2,
        },
        headers=headers,
    )
    assert both_scopes.status_code == 422

    reversed_slot = client.post(
        "/api/time-slots",
        json={"name": "Late", "start_time": "16:00", "end_time": "15:00", "order_index": 20},
        headers=headers,
    )
    assert reversed_slot.status_code == 422

    unknown_term = client.post(
        "/api/teacher-assignments",
        json={
            "academic_term_id": "missing",
            "teacher_id": school["teacher"]["id"],
            "class_id": school["class"]["id"],
            "subject_id": school["lit"]["id"],
        },
        headers=headers,
    )
    assert unknown_term.status_code == 404
