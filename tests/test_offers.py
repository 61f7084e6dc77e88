def test_create_offer(client, make_company, make_offer):
    acme = make_company()
    offer = make_offer(acme, is_paid=True, compensation_amount=15000,
                       start_date="2026-02-01", end_date="2026-06-30")
    assert offer["status"] == "active"
    assert offer["company_account_id"] == acme["id"]
    assert offer["company_name"] == "Acme"
    assert offer["compensation_amount"] == 15000
    assert offer["start_date"] == "2026-02-01"
    assert offer["application_count"] == 0


def test_unpaid_offer_has_no_compensation(make_company, make_offer):
    offer = make_offer(make_company(), is_paid=False, compensation_amount=5000)
    assert offer["compensation_amount"] is None


def test_create_offer_validation(client, make_company, make_student):
    acme = make_company()
    base = {"title": "Intern", "description": "Desc", "domain": "Informatique"}

    zero = client.post("/api/offres", json={**base, "capacity": 0}, headers=acme["headers"])
    assert zero.status_code == 400

    missing = client.post("/api/offres", json={"title": "Intern", "description": "Desc"}, headers=acme["headers"])
    assert missing.status_code == 400
    assert missing.json()["errors"][0]["field"] == "domain"

    dates = client.post("/api/offres", json={**base, "start_date": "2026-06-01", "end_date": "2026-05-01"},
                        headers=acme["headers"])
    assert dates.status_code == 400

    alice = make_student()
    assert client.post("/api/offres", json=base, headers=alice["headers"]).status_code == 403
    assert client.post("/api/offres", json=base).status_code == 401


def test_public_listing_filters(client, make_company, make_offer):
    acme = make_company()
    backend = make_offer(acme, title="Backend intern", location="Alger Centre", is_paid=True)
    data = make_offer(acme, title="Data analyst", description="Dashboards and SQL", domain="Data",
                      location="Oran", internship_type="Stage ouvrier")

    def ids(**params):
        resp = client.get("/api/offres", params=params)
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == len(body["data"])
        return [offer["id"] for offer in body["data"]]

    assert ids() == [data["id"], backend["id"]]
    assert ids(domain="data") == [data["id"]]
    assert ids(type="pfe") == [backend["id"]]
    assert ids(location="alger") == [backend["id"]]
    assert ids(paid="true") == [backend["id"]]
    assert ids(paid="false") == [data["id"]]
    assert ids(search="sql") == [data["id"]]
    assert ids(search="nothing-like-this") == []


def test_disabled_offers_are_hidden_from_public(client, make_company, make_offer):
    acme = make_company()
    offer = make_offer(acme)

    resp = client.put(f"/api/offres/{offer['id']}/status", json={"status": "disabled"}, headers=acme["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "disabled"

    assert client.get("/api/offres").json()["count"] == 0
    assert client.get(f"/api/offres/{offer['id']}").status_code == 404

    mine = client.get("/api/offres/company/mine", headers=acme["headers"]).json()
    assert [o["id"] for o in mine["data"]] == [offer["id"]]
    assert mine["data"][0]["status"] == "disabled"

    client.put(f"/api/offres/{offer['id']}/status", json={"status": "active"}, headers=acme["headers"])
    detail = client.get(f"/api/offres/{offer['id']}")
    assert detail.status_code == 200
    assert detail.json()["data"]["title"] == "Backend intern"


def test_blocked_company_offers_are_hidden(client, make_company, make_offer, admin):
    acme = make_company()
    make_offer(acme)
    client.put(f"/api/admin/users/{acme['id']}/status", json={"status": "blocked"}, headers=admin["headers"])
    assert client.get("/api/offres").json()["count"] == 0


def test_blocked_company_offer_has_no_detail_and_takes_no_applications(client, make_company, make_offer,
                                                                       make_student, admin):
    acme = make_company()
    alice = make_student()
    offer = make_offer(acme)
    client.put(f"/api/admin/users/{acme['id']}/status", json={"status": "blocked"}, headers=admin["headers"])

    assert client.get(f"/api/offres/{offer['id']}").status_code == 404
    apply = client.post("/api/candidatures", json={"offer_id": offer["id"]}, headers=alice["headers"])
    assert apply.status_code == 400
    assert client.get("/api/candidatures/student", headers=alice["headers"]).json()["count"] == 0

    # Still visible to admins
    listed = client.get("/api/admin/offres", headers=admin["headers"]).json()
    assert [o["id"] for o in listed["data"]] == [offer["id"]]

    client.put(f"/api/admin/users/{acme['id']}/status", json={"status": "active"}, headers=admin["headers"])
    assert client.get(f"/api/offres/{offer['id']}").status_code == 200
    assert client.post("/api/candidatures", json={"offer_id": offer["id"]},
                       headers=alice["headers"]).status_code == 201


def test_update_offer(client, make_company, make_offer):
    acme = make_company()
    offer = make_offer(acme, is_paid=True, compensation_amount=20000, start_date="2026-03-01")

    resp = client.put(f"/api/offres/{offer['id']}", json={"title": "Platform intern", "capacity": 4},
                      headers=acme["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "Platform intern"
    assert data["capacity"] == 4
    assert data["description"] == offer["description"]

    unpaid = client.put(f"/api/offres/{offer['id']}", json={"is_paid": False}, headers=acme["headers"])
    assert unpaid.json()["data"]["compensation_amount"] is None

    # Checked against the stored start date
    early_end = client.put(f"/api/offres/{offer['id']}", json={"end_date": "2026-01-01"}, headers=acme["headers"])
    assert early_end.status_code == 400

    null_title = client.put(f"/api/offres/{offer['id']}", json={"title": None}, headers=acme["headers"])
    assert null_title.status_code == 400


def test_only_owner_or_admin_manages_offer(client, make_company, make_offer, admin):
    acme = make_company()
    globex = make_company("hr@globex.dz", "Globex")
    offer = make_offer(acme)

    assert client.put(f"/api/offres/{offer['id']}", json={"title": "Mine now"},
                      headers=globex["headers"]).status_code == 403
    assert client.put(f"/api/offres/{offer['id']}/status", json={"status": "disabled"},
                      headers=globex["headers"]).status_code == 403
    assert client.delete(f"/api/offres/{offer['id']}", headers=globex["headers"]).status_code == 403

    by_admin = client.put(f"/api/offres/{offer['id']}", json={"title": "Moderated"}, headers=admin["headers"])
    assert by_admin.status_code == 200
    assert by_admin.json()["data"]["title"] == "Moderated"

    assert client.put("/api/offres/9999", json={"title": "x"}, headers=acme["headers"]).status_code == 404


def test_delete_offer_removes_applications(client, make_company, make_offer, make_student):
    acme = make_company()
    alice = make_student()
    offer = make_offer(acme)
    client.post("/api/candidatures", json={"offer_id": offer["id"]}, headers=alice["headers"])

    resp = client.delete(f"/api/offres/{offer['id']}", headers=acme["headers"])
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Offer deleted successfully"}

    assert client.get(f"/api/offres/{offer['id']}").status_code == 404
    assert client.get("/api/candidatures/student", headers=alice["headers"]).json()["count"] == 0


def test_application_count_on_company_offers(client, make_company, make_offer, make_student):
    acme = make_company()
    offer = make_offer(acme)
    for email in ("alice@univ.dz", "bob@univ.dz"):
        student = make_student(email)
        client.post("/api/candidatures", json={"offer_id": offer["id"]}, headers=student["headers"])

    mine = client.get("/api/offres/company/mine", headers=acme["headers"]).json()
    assert mine["data"][0]["application_count"] == 2
