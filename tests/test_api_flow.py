from sqlalchemy import select

from learnhub import models


def test_healthz(api_client):
    resp = api_client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_register_login_me(api_client):
    resp = api_client.post(
        "/api/auth/register",
        json={"email": "New.Student@Example.com", "password": "secret123", "name": "New", "role": "student"},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["user"]["email"] == "new.student@example.com"
    assert resp.json()["user"]["role"] == "student"

    dup = api_client.post(
        "/api/auth/register",
        json={"email": "new.student@example.com", "password": "secret123", "role": "student"},
    )
    assert dup.status_code == 409
    assert dup.json()["error"]["code"] == "EMAIL_ALREADY_REGISTERED"

    login = api_client.post("/api/auth/login", json={"email": "new.student@example.com", "password": "secret123"})
    assert login.status_code == 200, login.text
    token = login.json()["token"]

    me = api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["last_login_at"] is not None


def test_wrong_password_is_unauthorized(api_client, student):
    resp = api_client.post("/api/auth/login", json={"email": student.email, "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


def test_missing_and_bad_tokens(api_client):
    assert api_client.get("/api/courses").status_code == 401
    bad = api_client.get("/api/courses", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    assert bad.json()["error"]["code"] == "INVALID_TOKEN"


def test_validation_errors_use_error_envelope(api_client, teacher, auth_headers):
    resp = api_client.post("/api/courses", json={"title": ""}, headers=auth_headers(teacher))
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"]["errors"]


def test_course_crud_and_lock(api_client, db, teacher, student, auth_headers):
    headers = auth_headers(teacher)
    created = api_client.post("/api/courses", json={"title": "Statistics", "icon": "sigma"}, headers=headers)
    assert created.status_code == 201, created.text
    course_id = created.json()["course"]["id"]

    owner = db.execute(
        select(models.CourseTeacher.is_owner).where(
            models.CourseTeacher.course_id == course_id, models.CourseTeacher.user_id == teacher.id
        )
    ).scalar_one()
    assert owner is True

    assert api_client.post("/api/courses", json={"title": "Mine"}, headers=auth_headers(student)).status_code == 403

    patched = api_client.patch(f"/api/courses/{course_id}", json={"description": "Intro"}, headers=headers)
    assert patched.json()["course"]["description"] == "Intro"

    locked = api_client.patch(f"/api/courses/{course_id}/lock", headers=headers)
    assert locked.json() == {"course": {"id": course_id, "is_locked": True}}
    unlocked = api_client.patch(f"/api/courses/{course_id}/lock", headers=headers)
    assert unlocked.json()["course"]["is_locked"] is False

    listed = api_client.get("/api/courses", headers=headers).json()["courses"]
    assert [c["id"] for c in listed] == [course_id]

    assert api_client.delete(f"/api/courses/{course_id}", headers=headers).json() == {"success": True}
    assert api_client.get(f"/api/courses/{course_id}", headers=headers).status_code == 404


def test_locked_course_hidden_from_student(api_client, course, student, enroll, auth_headers, db):
    enroll(student, course)
    headers = auth_headers(student)
    assert api_client.get(f"/api/courses/{course.id}/graph", headers=headers).status_code == 200

    course.is_locked = True
    db.commit()

    assert api_client.get(f"/api/courses/{course.id}/graph", headers=headers).status_code == 403
    assert api_client.get("/api/courses", headers=headers).json()["courses"] == []


def test_graph_editing_over_http(api_client, course, teacher, auth_headers):
    headers = auth_headers(teacher)
    a = api_client.post("/api/hubs", json={"courseId": course.id, "title": "A"}, headers=headers).json()["hub"]
    b = api_client.post("/api/hubs", json={"courseId": course.id, "title": "B"}, headers=headers).json()["hub"]
    assert a["is_start"] is True
    assert b["is_start"] is False

    task = api_client.post("/api/tasks", json={"hubId": a["id"], "title": "Read"}, headers=headers)
    assert task.status_code == 201

    loop = api_client.post(
        "/api/edges", json={"courseId": course.id, "fromHubId": a["id"], "toHubId": a["id"]}, headers=headers
    )
    assert loop.status_code == 400
    assert loop.json()["error"]["code"] == "SELF_LOOP_EDGE"

    edge = api_client.post(
        "/api/edges", json={"courseId": course.id, "fromHubId": a["id"], "toHubId": b["id"]}, headers=headers
    )
    assert edge.status_code == 201

    swapped = api_client.patch(f"/api/hubs/{b['id']}", json={"isStart": True}, headers=headers)
    assert swapped.json()["hub"]["is_start"] is True

    graph = api_client.get(f"/api/courses/{course.id}/graph", headers=headers).json()["graph"]
    assert [h["is_start"] for h in graph["hubs"]] == [False, True]
    assert len(graph["tasks"]) == 1
    assert graph["edges"][0]["rule"] == "all_tasks_complete"

    edges = api_client.get("/api/edges", params={"courseId": course.id}, headers=headers).json()["edges"]
    assert [e["id"] for e in edges] == [edge.json()["edge"]["id"]]


def test_content_round_trip(api_client, course, teacher, student, enroll, make_hub, auth_headers):
    enroll(student, course)
    hub = make_hub(course, "A")
    payload = {"html": "<h1>Hi</h1>", "images": ["a.png"], "custom": {"k": 1}}

    saved = api_client.patch(f"/api/hubs/{hub.id}/content", json=payload, headers=auth_headers(teacher))
    assert saved.status_code == 200, saved.text

    read = api_client.get(f"/api/hubs/{hub.id}/content", headers=auth_headers(student))
    assert read.json() == {"id": hub.id, "payload": payload}

    denied = api_client.patch(f"/api/hubs/{hub.id}/content", json=payload, headers=auth_headers(student))
    assert denied.status_code == 403


def test_hub_progress_precondition_details(api_client, course, student, enroll, make_hub, make_task, auth_headers):
    enroll(student, course)
    hub = make_hub(course, "A")
    t1 = make_task(hub, "one")
    make_task(hub, "two")
    headers = auth_headers(student)

    assert api_client.put(f"/api/tasks/{t1.id}/progress", json={"done": True}, headers=headers).status_code == 200
    resp = api_client.put(f"/api/hubs/{hub.id}/progress", json={"done": True}, headers=headers)

    assert resp.status_code == 400
    assert resp.json()["error"]["details"] == {"total_tasks": 2, "completed_tasks": 1}

    progress = api_client.get(f"/api/courses/{course.id}/progress", headers=headers).json()
    assert progress["hubProgress"] == []
    assert progress["summary"]["completedTasks"] == 1


def test_quiz_authoring_rules(api_client, course, teacher, student, enroll, make_hub, auth_headers):
    enroll(student, course)
    hub = make_hub(course, "A")
    headers = auth_headers(teacher)

    bad = api_client.post(
        "/api/quizzes", json={"courseId": course.id, "title": "Q", "questionsPerAttempt": 4}, headers=headers
    )
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_QUESTIONS_PER_ATTEMPT"

    created = api_client.post(
        "/api/quizzes",
        json={"courseId": course.id, "hubId": hub.id, "title": "Q", "questionsPerAttempt": 5},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    assert created.json()["quiz"]["hub_id"] == hub.id

    dup = api_client.post(
        "/api/quizzes", json={"courseId": course.id, "title": "Q", "questionsPerAttempt": 3}, headers=headers
    )
    assert dup.status_code == 409

    assert api_client.get("/api/quizzes", headers=auth_headers(student)).status_code == 403
    listed = api_client.get("/api/quizzes", params={"courseId": course.id}, headers=headers).json()
    assert [q["title"] for q in listed] == ["Q"]
    assert listed[0]["hub_title"] == "A"


def test_full_quiz_flow_issues_certificate(api_client, course, teacher, student, enroll, make_hub, auth_headers):
    enroll(student, course)
    hub = make_hub(course, "Only", is_start=True)
    teacher_headers = auth_headers(teacher)
    student_headers = auth_headers(student)

    quiz_id = api_client.post(
        "/api/quizzes",
        json={"courseId": course.id, "hubId": hub.id, "title": "Final", "questionsPerAttempt": 3},
        headers=teacher_headers,
    ).json()["quiz"]["id"]
    correct: dict[int, int] = {}
    for n in range(3):
        question = api_client.post(
            f"/api/questions/{quiz_id}/questions", json={"questionText": f"Q{n}"}, headers=teacher_headers
        ).json()["question"]
        right = api_client.post(
            f"/api/questions/{question['id']}/answers",
            json={"answerText": "right", "isCorrect": True},
            headers=teacher_headers,
        ).json()["answer"]
        api_client.post(
            f"/api/questions/{question['id']}/answers", json={"answerText": "wrong"}, headers=teacher_headers
        )
        correct[question["id"]] = right["id"]

    detail = api_client.get(f"/api/quizzes/{quiz_id}", headers=teacher_headers).json()["quiz"]
    assert detail["question_count"] == 3
    assert all(len(q["answers"]) == 2 for q in detail["questions"])

    started = api_client.post(f"/api/student-quiz/hubs/{hub.id}/quiz/start", headers=student_headers)
    assert started.status_code == 200, started.text
    attempt = started.json()
    assert sorted(q["id"] for q in attempt["questions"]) == sorted(correct)

    submitted = api_client.post(
        f"/api/student-quiz/quizzes/{quiz_id}/submit",
        json={
            "hubId": hub.id,
            "attemptId": attempt["attemptId"],
            "answers": [{"questionId": qid, "selectedAnswerIds": [aid]} for qid, aid in correct.items()],
        },
        headers=student_headers,
    )
    assert submitted.status_code == 200, submitted.text
    body = submitted.json()
    assert body["passed"] is True
    assert body["score"] == 3
    assert body["newCertificate"]["courseTitle"] == "Graph Theory"

    again = api_client.post(
        f"/api/student-quiz/quizzes/{quiz_id}/submit",
        json={"hubId": hub.id, "attemptId": attempt["attemptId"], "answers": []},
        headers=student_headers,
    )
    assert again.status_code == 404

    mine = api_client.get("/api/certificates/my", headers=student_headers).json()
    assert [c["courseId"] for c in mine] == [course.id]

    staff_view = api_client.get(f"/api/certificates/users/{student.id}", headers=teacher_headers)
    assert staff_view.status_code == 200
    assert len(staff_view.json()["certificates"]) == 1
    assert api_client.get(f"/api/certificates/users/{teacher.id}", headers=student_headers).status_code == 403


def test_members_add_and_remove(api_client, db, course, admin, teacher, student, auth_headers):
    headers = auth_headers(admin)

    available = api_client.get(
        "/api/course-members/users/for-course",
        params={"excludeCourseId": course.id, "role": "student"},
        headers=headers,
    ).json()["users"]
    assert [u["id"] for u in available] == [student.id]

    added = api_client.post(
        f"/api/course-members/{course.id}/members",
        json={"userId": student.id, "roleInCourse": "student"},
        headers=headers,
    )
    assert added.status_code == 201, added.text

    again = api_client.post(
        f"/api/course-members/{course.id}/members",
        json={"userId": student.id, "roleInCourse": "student"},
        headers=headers,
    )
    assert again.status_code == 409

    members = api_client.get(f"/api/course-members/{course.id}/members", headers=headers).json()["members"]
    assert {(m["id"], m["role_in_course"]) for m in members} == {(teacher.id, "teacher"), (student.id, "student")}

    by_teacher = api_client.post(
        f"/api/course-members/{course.id}/members",
        json={"userId": admin.id, "roleInCourse": "teacher"},
        headers=auth_headers(teacher),
    )
    assert by_teacher.status_code == 403

    removed = api_client.delete(f"/api/course-members/{course.id}/members/{student.id}", headers=headers)
    assert removed.status_code == 200
    gone = api_client.delete(f"/api/course-members/{course.id}/members/{student.id}", headers=headers)
    assert gone.status_code == 404


def test_dashboards(api_client, course, admin, teacher, student, enroll, make_hub, auth_headers):
    enroll(student, course)
    hub = make_hub(course, "A")
    api_client.put(f"/api/hubs/{hub.id}/progress", json={"done": True}, headers=auth_headers(student))

    progress = api_client.get("/api/courses/dashboard/progress", headers=auth_headers(student))
    assert progress.status_code == 200
    courses = progress.json()["courses"]
    assert courses[0]["progress"]["percentage"] == 100

    activity = api_client.get("/api/courses/dashboard/activity", headers=auth_headers(teacher))
    assert activity.status_code == 200
    assert activity.json()["activities"][0]["itemTitle"] == "A"
    assert api_client.get("/api/courses/dashboard/activity", headers=auth_headers(student)).status_code == 403

    stats = api_client.get("/api/courses/dashboard/admin-stats", headers=auth_headers(admin))
    assert stats.status_code == 200
    assert stats.json()["stats"]["totalStudents"] == 1
    assert stats.json()["stats"]["totalCourses"] == 1
    assert api_client.get("/api/courses/dashboard/admin-stats", headers=auth_headers(teacher)).status_code == 403


def test_admin_user_management(api_client, admin, teacher, auth_headers):
    headers = auth_headers(admin)

    roles = api_client.get("/api/roles", headers=headers).json()["roles"]
    assert {r["name"] for r in roles} == {"admin", "teacher", "student"}

    created = api_client.post(
        "/api/users",
        json={"email": "helper@example.com", "password": "secret123", "name": "Helper", "role": "teacher"},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    user_id = created.json()["user"]["id"]

    empty = api_client.put(f"/api/users/{user_id}", json={}, headers=headers)
    assert empty.status_code == 400

    renamed = api_client.put(f"/api/users/{user_id}", json={"name": "Renamed"}, headers=headers)
    assert renamed.json()["user"]["name"] == "Renamed"

    assert api_client.get("/api/users", headers=auth_headers(teacher)).status_code == 403
    assert api_client.delete(f"/api/users/{user_id}", headers=headers).status_code == 200
