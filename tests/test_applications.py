from concurrent.futures import ThreadPoolExecutor

from tests.conftest import CV_DATA_URL


def _apply(client, student, offer_id, message=None):
    body = {"offer_id": offer_id}
    if message is not None:
        body["message"] = message
    return client.post("/api/candidatures", json=body, headers=student["headers"])


def test_alice_must_upload_cv_before_applying(client, make_student, make_company, make_offer, notifier):
    alice = make_student(cv=False)
    offer = make_offer(make_company())

    resp = _apply(client, alice, offer["id"])
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["missing_cv"] is True

    resp = client.put("/api/student/profile", json={"cv_url": CV_DATA_URL}, headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["cv_url"].startswith("/api/files/")

    resp = _apply(client, alice, offer["id"], "Motivated")
    assert resp.status_code == 201
    application = resp.json()["data"]
    assert application["status"] == "pending"
    assert application["message"] == "Motivated"

    [(event, payload)] = notifier.sent
    assert event == "application_received"
    assert payload["company_email"] == "contact@acme.dz"
    assert payload["student_name"] == "Alice Martin"


def test_missing_cv_wins_over_other_problems(client, make_student, make_company, make_offer):
    student = make_student(cv=False)
    company = make_company()
    offer = make_offer(company)
    client.put(f"/api/offres/{offer['id']}/status", json={"status": "disabled"}, headers=company["headers"])

    for offer_id in (offer["id"], 9999):
        resp = _apply(client, student, offer_id)
        assert resp.status_code == 422
        assert resp.json()["missing_cv"] is True


def test_names_are_required_after_cv(client, register, make_company, make_offer):
    student = register("noname@univ.dz", "student")
    client.put("/api/student/profile", json={"cv_url": "https://cdn.example.com/cv.pdf"}, headers=student["headers"])
    offer = make_offer(make_company())

    resp = _apply(client, student, offer["id"])
    assert resp.status_code == 422
    assert resp.json()["incomplete_profile"] is True


def test_apply_to_unknown_or_disabled_offer(client, make_student, make_company, make_offer):
    student = make_student()
    company = make_company()
    offer = make_offer(company)

    assert _apply(client, student, 9999).status_code == 404

    client.put(f"/api/offres/{offer['id']}/status", json={"status": "disabled"}, headers=company["headers"])
    resp = _apply(client, student, offer["id"])
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_second_submission_conflicts(client, make_student, make_company, make_offer):
    student = make_student()
    offer = make_offer(make_company())

    assert _apply(client, student, offer["id"]).status_code == 201
    resp = _apply(client, student, offer["id"])
    assert resp.status_code == 409
    assert resp.json()["success"] is False

    listing = client.get("/api/candidatures/student", headers=student["headers"]).json()
    assert listing["count"] == 1


def test_concurrent_duplicate_submissions_create_one_row(client, make_student, make_company, make_offer):
    student = make_student()
    offer = make_offer(make_company())

    with ThreadPoolExecutor(max_workers=4) as pool:
        codes = list(pool.map(lambda _: _apply(client, student, offer["id"]).status_code, range(4)))

    assert codes.count(201) == 1
    assert set(codes) <= {201, 409, 500}
    listing = client.get("/api/candidatures/student", headers=student["headers"]).json()
    assert listing["count"] == 1


def test_student_listing_is_scoped(client, make_student, make_company, make_offer):
    alice = make_student()
    bob = make_student(email="bob@univ.dz", first_name="Bob", last_name="Durand")
    offer = make_offer(make_company())
    other = make_offer(make_company("hr@globex.dz", "Globex"), title="Data intern")

    _apply(client, alice, offer["id"])
    _apply(client, bob, offer["id"])
    _apply(client, bob, other["id"])

    alice_apps = client.get("/api/candidatures/student", headers=alice["headers"]).json()["data"]
    assert [a["student_account_id"] for a in alice_apps] == [alice["id"]]
    assert alice_apps[0]["offer_title"] == "Backend intern"
    assert alice_apps[0]["company_name"] == "Acme"

    bob_apps = client.get("/api/candidatures/student", headers=bob["headers"]).json()["data"]
    assert {a["student_account_id"] for a in bob_apps} == {bob["id"]}
    assert len(bob_apps) == 2


def test_student_listing_is_scoped_under_concurrent_submissions(client, make_student, make_company, make_offer):
    acme = make_company()
    offers = [make_offer(acme, title=f"Intern {n}") for n in range(3)]
    students = [
        make_student(email=f"student{n}@univ.dz", first_name=f"Student{n}") for n in range(4)
    ]
    pairs = [(student, offer) for student in students for offer in offers]

    with ThreadPoolExecutor(max_workers=6) as pool:
        responses = list(pool.map(lambda pair: _apply(client, pair[0], pair[1]["id"]), pairs))

    accepted = {}
    for (student, offer), resp in zip(pairs, responses):
        if resp.status_code == 201:
            accepted.setdefault(student["id"], set()).add(offer["id"])
    assert accepted

    for student in students:
        listing = client.get("/api/candidatures/student", headers=student["headers"]).json()["data"]
        assert {a["student_account_id"] for a in listing} <= {student["id"]}
        assert sorted(a["offer_id"] for a in listing) == sorted(accepted.get(student["id"], set()))


def test_company_listing_is_scoped_and_filtered(client, make_student, make_company, make_offer):
    alice = make_student()
    acme = make_company()
    globex = make_company("hr@globex.dz", "Globex")
    acme_offer = make_offer(acme)
    second_offer = make_offer(acme, title="Frontend intern")
    globex_offer = make_offer(globex)

    for offer in (acme_offer, second_offer, globex_offer):
        _apply(client, alice, offer["id"])

    data = client.get("/api/candidatures/company", headers=acme["headers"]).json()
    assert data["count"] == 2
    assert {a["offer_id"] for a in data["data"]} == {acme_offer["id"], second_offer["id"]}
    assert data["data"][0]["student_email"] == "alice@univ.dz"
    assert data["data"][0]["cv_url"].startswith("/api/files/")

    filtered = client.get(
        "/api/candidatures/company", params={"offer_id": acme_offer["id"]}, headers=acme["headers"]
    ).json()
    assert [a["offer_id"] for a in filtered["data"]] == [acme_offer["id"]]

    pending = client.get("/api/candidatures/company", params={"status": "accepted"}, headers=acme["headers"])
    assert pending.json()["count"] == 0


def test_acme_rejects_once(client, make_student, make_company, make_offer, notifier):
    alice = make_student()
    acme = make_company()
    offer = make_offer(acme)
    app_id = _apply(client, alice, offer["id"]).json()["data"]["id"]

    resp = client.put(f"/api/candidatures/{app_id}/status", json={"status": "rejected"}, headers=acme["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected"

    again = client.put(f"/api/candidatures/{app_id}/status", json={"status": "rejected"}, headers=acme["headers"])
    assert again.status_code == 400
    assert again.json()["success"] is False

    event, payload = notifier.sent[-1]
    assert event == "application_status_changed"
    assert payload == {
        "student_email": "alice@univ.dz",
        "student_name": "Alice Martin",
        "offer_title": "Backend intern",
        "company_name": "Acme",
        "status": "rejected",
    }


def test_accept_twice_is_a_validation_error(client, make_student, make_company, make_offer):
    acme = make_company()
    app_id = _apply(client, make_student(), make_offer(acme)["id"]).json()["data"]["id"]

    first = client.put(f"/api/candidatures/{app_id}/status", json={"status": "accepted"}, headers=acme["headers"])
    assert first.status_code == 200
    second = client.put(f"/api/candidatures/{app_id}/status", json={"status": "accepted"}, headers=acme["headers"])
    assert second.status_code == 400


def test_other_company_cannot_transition(client, make_student, make_company, make_offer):
    acme = make_company()
    globex = make_company("hr@globex.dz", "Globex")
    alice = make_student()
    app_id = _apply(client, alice, make_offer(acme)["id"]).json()["data"]["id"]

    resp = client.put(f"/api/candidatures/{app_id}/status", json={"status": "accepted"}, headers=globex["headers"])
    assert resp.status_code == 403

    apps = client.get("/api/candidatures/student", headers=alice["headers"]).json()["data"]
    assert apps[0]["status"] == "pending"


def test_transition_back_to_pending_is_rejected(client, make_student, make_company, make_offer):
    acme = make_company()
    app_id = _apply(client, make_student(), make_offer(acme)["id"]).json()["data"]["id"]

    resp = client.put(f"/api/candidatures/{app_id}/status", json={"status": "pending"}, headers=acme["headers"])
    assert resp.status_code == 400


def test_transition_survives_notification_failure(client, make_student, make_company, make_offer, notifier):
    acme = make_company()
    alice = make_student()
    app_id = _apply(client, alice, make_offer(acme)["id"]).json()["data"]["id"]

    notifier.fail = True
    resp = client.put(f"/api/candidatures/{app_id}/status", json={"status": "accepted"}, headers=acme["headers"])
    assert resp.status_code == 200

    apps = client.get("/api/candidatures/student", headers=alice["headers"]).json()["data"]
    assert apps[0]["status"] == "accepted"


def test_submission_survives_notification_failure(client, make_student, make_company, make_offer, notifier):
    notifier.fail = True
    resp = _apply(client, make_student(), make_offer(make_company())["id"])
    assert resp.status_code == 201


def test_withdraw_pending_and_clear_decided(client, make_student, make_company, make_offer):
    acme = make_company()
    alice = make_student()
    first = _apply(client, alice, make_offer(acme)["id"]).json()["data"]["id"]
    second = _apply(client, alice, make_offer(acme, title="Other")["id"]).json()["data"]["id"]
    client.put(f"/api/candidatures/{second}/status", json={"status": "accepted"}, headers=acme["headers"])

    assert client.delete(f"/api/candidatures/{first}", headers=alice["headers"]).status_code == 200
    assert client.delete(f"/api/candidatures/{second}", headers=alice["headers"]).status_code == 200
    assert client.get("/api/candidatures/student", headers=alice["headers"]).json()["count"] == 0
    assert client.delete(f"/api/candidatures/{first}", headers=alice["headers"]).status_code == 404


def test_only_owner_can_withdraw(client, make_student, make_company, make_offer):
    alice = make_student()
    bob = make_student(email="bob@univ.dz", first_name="Bob")
    app_id = _apply(client, alice, make_offer(make_company())["id"]).json()["data"]["id"]

    assert client.delete(f"/api/candidatures/{app_id}", headers=bob["headers"]).status_code == 403
    assert client.get("/api/candidatures/student", headers=alice["headers"]).json()["count"] == 1


def test_counters_and_applied_check(client, make_student, make_company, make_offer):
    acme = make_company()
    alice = make_student()
    offer = make_offer(acme)
    untouched = make_offer(acme, title="Untouched")

    check = client.get(f"/api/candidatures/offre/{offer['id']}", headers=alice["headers"]).json()
    assert check["has_applied"] is False
    assert check["data"] is None

    app_id = _apply(client, alice, offer["id"]).json()["data"]["id"]
    check = client.get(f"/api/candidatures/offre/{offer['id']}", headers=alice["headers"]).json()
    assert check["has_applied"] is True
    assert check["data"]["id"] == app_id
    assert client.get(f"/api/candidatures/offre/{untouched['id']}", headers=alice["headers"]).json()["has_applied"] is False

    assert client.get("/api/candidatures/company/pending-count", headers=acme["headers"]).json()["count"] == 1
    assert client.get("/api/candidatures/student/new-responses", headers=alice["headers"]).json()["count"] == 0

    client.put(f"/api/candidatures/{app_id}/status", json={"status": "accepted"}, headers=acme["headers"])
    assert client.get("/api/candidatures/company/pending-count", headers=acme["headers"]).json()["count"] == 0
    assert client.get("/api/candidatures/student/new-responses", headers=alice["headers"]).json()["count"] == 1


def test_roles_are_enforced(client, make_student, make_company):
    alice = make_student()
    acme = make_company()

    assert client.post("/api/candidatures", json={"offer_id": 1}, headers=acme["headers"]).status_code == 403
    assert client.get("/api/candidatures/company", headers=alice["headers"]).status_code == 403
    assert client.get("/api/candidatures/student").status_code == 401
