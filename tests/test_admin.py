def _apply(client, student, offer):
    resp = client.post("/api/candidatures", json={"offer_id": offer["id"]}, headers=student["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_admin_routes_require_admin(client, make_company):
    acme = make_company()
    assert client.get("/api/admin/students").status_code == 401
    assert client.get("/api/admin/students", headers=acme["headers"]).status_code == 403


def test_list_and_detail_students(client, make_student, make_company, make_offer, admin):
    alice = make_student(education_level="M1", institution="USTHB")
    make_student("bob@univ.dz", "Bob")
    offer = make_offer(make_company())
    _apply(client, alice, offer)

    listing = client.get("/api/admin/students", headers=admin["headers"]).json()
    assert listing["count"] == 2
    assert {s["email"] for s in listing["data"]} == {"alice@univ.dz", "bob@univ.dz"}

    detail = client.get(f"/api/admin/students/{alice['id']}", headers=admin["headers"]).json()["data"]
    assert detail["institution"] == "USTHB"
    assert detail["application_count"] == 1
    assert detail["pending_count"] == 1
    assert detail["accepted_count"] == 0
    assert detail["cv_url"].startswith("/api/files/")

    assert client.get("/api/admin/students/9999", headers=admin["headers"]).status_code == 404
    # A company id is not a student
    acme_id = client.get("/api/admin/companies", headers=admin["headers"]).json()["data"][0]["id"]
    assert client.get(f"/api/admin/students/{acme_id}", headers=admin["headers"]).status_code == 404


def test_list_and_detail_companies(client, make_company, make_offer, make_student, admin):
    acme = make_company()
    offer = make_offer(acme)
    make_offer(acme, title="Disabled one")
    disabled = client.get("/api/offres/company/mine", headers=acme["headers"]).json()["data"][0]
    client.put(f"/api/offres/{disabled['id']}/status", json={"status": "disabled"}, headers=acme["headers"])
    _apply(client, make_student(), offer)

    listing = client.get("/api/admin/companies", headers=admin["headers"]).json()
    assert listing["data"][0]["company_name"] == "Acme"
    assert listing["data"][0]["offer_count"] == 2

    detail = client.get(f"/api/admin/companies/{acme['id']}", headers=admin["headers"]).json()["data"]
    assert detail["offer_count"] == 2
    assert detail["active_offer_count"] == 1
    assert detail["applications_received"] == 1


def test_block_and_filter_by_status(client, make_student, admin):
    alice = make_student()
    make_student("bob@univ.dz", "Bob")

    resp = client.put(f"/api/admin/users/{alice['id']}/status", json={"status": "blocked"}, headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": alice["id"], "email": "alice@univ.dz", "status": "blocked"}

    blocked = client.get("/api/admin/students", params={"status": "blocked"}, headers=admin["headers"]).json()
    assert [s["email"] for s in blocked["data"]] == ["alice@univ.dz"]

    bad = client.put(f"/api/admin/users/{alice['id']}/status", json={"status": "frozen"}, headers=admin["headers"])
    assert bad.status_code == 400


def test_admin_accounts_cannot_be_moderated(client, admin):
    blocked = client.put(f"/api/admin/users/{admin['id']}/status", json={"status": "blocked"},
                         headers=admin["headers"])
    assert blocked.status_code == 403
    assert client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"]).status_code == 403
    assert client.delete("/api/admin/users/9999", headers=admin["headers"]).status_code == 404


def test_deleting_a_company_removes_its_offers_and_applications(client, make_company, make_offer,
                                                                make_student, admin):
    acme = make_company()
    globex = make_company("hr@globex.dz", "Globex")
    alice = make_student()
    acme_offer = make_offer(acme)
    globex_offer = make_offer(globex, title="Globex intern")
    _apply(client, alice, acme_offer)
    kept = _apply(client, alice, globex_offer)

    resp = client.delete(f"/api/admin/users/{acme['id']}", headers=admin["headers"])
    assert resp.status_code == 200

    offers = client.get("/api/admin/offres", headers=admin["headers"]).json()
    assert [o["id"] for o in offers["data"]] == [globex_offer["id"]]
    public = client.get("/api/offres").json()
    assert [o["id"] for o in public["data"]] == [globex_offer["id"]]
    assert client.get(f"/api/offres/{acme_offer['id']}").status_code == 404
    applications = client.get("/api/admin/candidatures", headers=admin["headers"]).json()
    assert [a["id"] for a in applications["data"]] == [kept["id"]]

    login = client.post("/api/auth/login", json={"email": "contact@acme.dz", "password": "password123"})
    assert login.status_code == 401
    # The old token no longer resolves to an account
    assert client.get("/api/auth/me", headers=acme["headers"]).status_code == 401


def test_deleting_a_student_removes_their_applications(client, make_company, make_offer, make_student, admin):
    offer = make_offer(make_company())
    alice = make_student()
    _apply(client, alice, offer)

    assert client.delete(f"/api/admin/users/{alice['id']}", headers=admin["headers"]).status_code == 200
    assert client.get("/api/admin/candidatures", headers=admin["headers"]).json()["count"] == 0
    assert client.get("/api/admin/students", headers=admin["headers"]).json()["count"] == 0


def test_admin_offer_moderation(client, make_company, make_offer, admin):
    acme = make_company()
    offer = make_offer(acme)

    resp = client.put(f"/api/admin/offres/{offer['id']}/status", json={"status": "disabled"},
                      headers=admin["headers"])
    assert resp.json()["data"]["status"] == "disabled"

    disabled = client.get("/api/admin/offres", params={"status": "disabled"}, headers=admin["headers"]).json()
    assert disabled["count"] == 1
    active = client.get("/api/admin/offres", params={"status": "active"}, headers=admin["headers"]).json()
    assert active["count"] == 0

    assert client.delete(f"/api/admin/offres/{offer['id']}", headers=admin["headers"]).status_code == 200
    assert client.get("/api/admin/offres", headers=admin["headers"]).json()["count"] == 0
    assert client.delete(f"/api/admin/offres/{offer['id']}", headers=admin["headers"]).status_code == 404


def test_admin_application_filters_and_delete(client, make_company, make_offer, make_student, admin):
    acme = make_company()
    globex = make_company("hr@globex.dz", "Globex")
    alice = make_student()
    bob = make_student("bob@univ.dz", "Bob")
    acme_offer = make_offer(acme)
    globex_offer = make_offer(globex)

    first = _apply(client, alice, acme_offer)
    _apply(client, bob, acme_offer)
    _apply(client, alice, globex_offer)
    client.put(f"/api/candidatures/{first['id']}/status", json={"status": "accepted"}, headers=acme["headers"])

    def ids(**params):
        body = client.get("/api/admin/candidatures", params=params, headers=admin["headers"]).json()
        return body["data"]

    assert len(ids()) == 3
    assert [a["id"] for a in ids(status="accepted")] == [first["id"]]
    assert len(ids(student_id=alice["id"])) == 2
    assert len(ids(company_id=acme["id"])) == 2
    assert len(ids(offer_id=globex_offer["id"])) == 1
    assert ids(student_id=alice["id"], company_id=globex["id"])[0]["company_name"] == "Globex"

    assert client.delete(f"/api/admin/candidatures/{first['id']}", headers=admin["headers"]).status_code == 200
    assert len(ids()) == 2
    assert client.delete(f"/api/admin/candidatures/{first['id']}", headers=admin["headers"]).status_code == 404
