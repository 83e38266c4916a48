import re

from sqlalchemy import select

from urlshortener import codes, crud, models
from urlshortener.errors import DegradedSideEffect, StoreUnavailable

HX = {"HX-Request": "true"}


def only_code(session_factory):
    with session_factory() as session:
        return session.execute(select(models.URL.short_code)).scalar_one()


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert 'action="/shorten"' in response.text


def test_static_assets(client):
    response = client.get("/static/app.js")
    assert response.status_code == 200
    assert "copyToClipBoard" in response.text


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_shorten_and_redirect(client, session_factory, fetch):
    response = client.post("/shorten", data={"url": "https://example.com/very/long/path"}, headers=HX)
    assert response.status_code == 200
    code = only_code(session_factory)
    assert len(code) == 6
    assert set(code) <= set(codes.ALPHABET)
    assert f'href="http://testserver/{code}"' in response.text

    redirect = client.get(f"/{code}", follow_redirects=False)
    assert redirect.status_code == 301
    assert redirect.headers["location"] == "https://example.com/very/long/path"
    assert fetch(code).visits == 1


def test_shorten_without_htmx_redirects_home(client, session_factory):
    response = client.post("/shorten", data={"url": "https://example.com"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert only_code(session_factory)


def test_shorten_fragment_honours_forwarded_proto(client):
    response = client.post(
        "/shorten",
        data={"url": "https://example.com"},
        headers={**HX, "X-Forwarded-Proto": "https"},
    )
    assert "https://testserver/" in response.text


def test_shorten_empty_url_is_bad_request(client, db):
    for data in ({"url": ""}, {}):
        response = client.post("/shorten", data=data)
        assert response.status_code == 400
        assert response.text == "URL is required"
    assert crud.top_by_visits(db) == []


def test_unknown_code_is_not_found(client, db):
    response = client.get("/doesnotexist", follow_redirects=False)
    assert response.status_code == 404
    assert crud.top_by_visits(db) == []


def test_insert_failure_is_generic_500(client, monkeypatch, caplog):
    def broken(db, original_url, short_code):
        raise StoreUnavailable("connection refused by 10.0.0.3")

    monkeypatch.setattr(crud, "insert_url", broken)
    with caplog.at_level("ERROR", logger="urlshortener"):
        response = client.post("/shorten", data={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.text == "Internal server error"
    assert "10.0.0.3" not in response.text
    assert "POST /shorten failed" in caplog.text


def test_collision_surfaces_as_500(client, monkeypatch):
    monkeypatch.setattr(codes, "generate_code", lambda length: "same01")
    assert client.post("/shorten", data={"url": "https://example.com/a"}, headers=HX).status_code == 200
    response = client.post("/shorten", data={"url": "https://example.com/b"}, headers=HX)
    assert response.status_code == 500


def test_redirect_survives_visit_increment_failure(client, session_factory, monkeypatch):
    client.post("/shorten", data={"url": "https://example.com"}, headers=HX)
    code = only_code(session_factory)

    def broken(db, url_id):
        raise DegradedSideEffect("read-only replica")

    monkeypatch.setattr(crud, "increment_visits", broken)
    response = client.get(f"/{code}", follow_redirects=False)
    assert response.status_code == 301
    assert response.headers["location"] == "https://example.com"


def test_stats_fragment_ordering_and_truncation(client, db):
    exact = "https://example.com/abcdefghij"
    long_url = "https://example.com/abcdefghijk/more"
    five = crud.insert_url(db, exact, "five05")
    ten = crud.insert_url(db, long_url, "ten010")
    for _ in range(5):
        crud.increment_visits(db, five.id)
    for _ in range(10):
        crud.increment_visits(db, ten.id)

    response = client.get("/stats", headers=HX)
    assert response.status_code == 200
    html = response.text
    assert html.index("ten010") < html.index("five05")
    assert f">{exact}</a>" in html
    assert f">{long_url[:27]}...</a>" in html
    assert "http://testserver/ten010" in html
    assert re.search(r"<td>\d{4}-\d{2}-\d{2}</td>", html)
    assert "<td>10</td>" in html and "<td>5</td>" in html


def test_stats_full_page(client):
    response = client.get("/stats")
    assert response.status_code == 200
    assert 'hx-get="/stats"' in response.text


def test_stats_query_failure_is_500(client, monkeypatch):
    def broken(db, limit=10):
        raise StoreUnavailable("stats query failed")

    monkeypatch.setattr(crud, "top_by_visits", broken)
    response = client.get("/stats", headers=HX)
    assert response.status_code == 500
    assert response.text == "Internal server error"


def test_shorten_fragment_with_quoting_host(client):
    response = client.post(
        "/shorten",
        data={"url": "https://example.com"},
        headers={**HX, "host": "x');alert(1);('"},
    )
    assert response.status_code == 200
    assert "');alert(1)" not in response.text
    assert 'onclick="copyToClipBoard(this.dataset.url)"' in response.text
