from __future__ import annotations

from fastapi.testclient import TestClient


def make_folder(client: TestClient, headers: dict, name: str, parent_id: str | None = None) -> dict:
    resp = client.post("/api/folders", json={"name": name, "parent_id": parent_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_and_list_folders(client: TestClient, auth_headers, other_headers):
    make_folder(client, auth_headers, "Work")
    make_folder(client, auth_headers, "archive")
    make_folder(client, other_headers, "Not mine")

    folders = client.get("/api/folders", headers=auth_headers).json()
    assert [folder["name"] for folder in folders] == ["archive", "Work"]
    assert all(folder["form_count"] == 0 for folder in folders)


def test_create_folder_requires_name(client: TestClient, auth_headers):
    resp = client.post("/api/folders", json={"name": "  "}, headers=auth_headers)
    assert resp.status_code == 400


def test_forms_in_folder(client: TestClient, auth_headers):
    folder = make_folder(client, auth_headers, "Work")
    client.post("/api/forms", json={"title": "In folder", "folderId": folder["id"]}, headers=auth_headers)
    client.post("/api/forms", json={"title": "At root"}, headers=auth_headers)

    contents = client.get(f"/api/folders/{folder['id']}", headers=auth_headers).json()
    assert contents["form_count"] == 1
    assert [form["title"] for form in contents["forms"]] == ["In folder"]

    root = client.get("/api/forms?folder_id=root", headers=auth_headers).json()
    assert [form["title"] for form in root] == ["At root"]
    inside = client.get(f"/api/forms?folder_id={folder['id']}", headers=auth_headers).json()
    assert [form["title"] for form in inside] == ["In folder"]


def test_move_form_between_folders(client: TestClient, auth_headers):
    folder = make_folder(client, auth_headers, "Work")
    form_id = client.post("/api/forms", json={"title": "F"}, headers=auth_headers).json()["id"]
    resp = client.patch(f"/api/forms/{form_id}", json={"folder_id": folder["id"]}, headers=auth_headers)
    assert resp.json()["folder_id"] == folder["id"]
    resp = client.patch(f"/api/forms/{form_id}", json={"folder_id": None}, headers=auth_headers)
    assert resp.json()["folder_id"] is None


def test_rename_folder(client: TestClient, auth_headers):
    folder = make_folder(client, auth_headers, "Old")
    resp = client.patch(f"/api/folders/{folder['id']}", json={"name": "New"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "New"
    assert client.patch("/api/folders/missing", json={"name": "x"}, headers=auth_headers).status_code == 404


def test_nesting_is_shallow(client: TestClient, auth_headers):
    top = make_folder(client, auth_headers, "Top")
    child = make_folder(client, auth_headers, "Child", top["id"])
    assert child["parent_id"] == top["id"]

    resp = client.post("/api/folders", json={"name": "Grandchild", "parent_id": child["id"]}, headers=auth_headers)
    assert resp.status_code == 400

    other = make_folder(client, auth_headers, "Other")
    resp = client.patch(f"/api/folders/{top['id']}", json={"parent_id": other["id"]}, headers=auth_headers)
    assert resp.status_code == 400
    resp = client.patch(f"/api/folders/{other['id']}", json={"parent_id": other["id"]}, headers=auth_headers)
    assert resp.status_code == 400

    top_contents = client.get(f"/api/folders/{top['id']}", headers=auth_headers).json()
    assert [folder["id"] for folder in top_contents["folders"]] == [child["id"]]


def test_delete_folder_keeps_its_forms(client: TestClient, auth_headers):
    folder = make_folder(client, auth_headers, "Work")
    child = make_folder(client, auth_headers, "Sub", folder["id"])
    form_id = client.post(
        "/api/forms", json={"title": "Keep me", "folder_id": folder["id"]}, headers=auth_headers
    ).json()["id"]

    assert client.delete(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 204

    form = client.get(f"/api/forms/{form_id}", headers=auth_headers)
    assert form.status_code == 200
    assert form.json()["folder_id"] is None

    folders = client.get("/api/folders", headers=auth_headers).json()
    assert [(item["id"], item["parent_id"]) for item in folders] == [(child["id"], None)]
    assert client.delete(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 404


def test_folders_are_scoped_to_owner(client: TestClient, auth_headers, other_headers):
    folder = make_folder(client, other_headers, "Theirs")
    assert client.get(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 404
    resp = client.post("/api/forms", json={"title": "F", "folder_id": folder["id"]}, headers=auth_headers)
    assert resp.status_code == 404
