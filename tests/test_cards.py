import io

import pandas as pd
import pytest

from card_export import EXPORT_COLUMNS
from errors import InvalidFilterError
from schemas import SORT_OPTIONS, SPORT_OPTIONS, CardCreate, CardFilter, CardUpdate, UserCreate, UserRead
from storage import SORT_ORDERS, CardRepository, UserRepository, parse_year_filter


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_card_returns_stored_card(client, make_card):
    card = make_card(notes="2023 Panini Prizm Silver")
    assert card["id"] > 0
    assert card["playerName"] == "Lionel Messi"
    assert card["cardSet"] == "Chrome"
    assert card["purchasePrice"] == 10
    assert card["createdAt"]
    assert card["displayNotes"] == "Prizm Silver"

    response = client.get(f"/api/cards/{card['id']}")
    assert response.status_code == 200
    assert response.json()["playerName"] == "Lionel Messi"


def test_create_card_applies_defaults(client):
    response = client.post(
        "/api/cards",
        json={"playerName": "Mike Trout", "year": 2011, "brand": "Topps", "condition": "psa10"},
    )
    assert response.status_code == 201
    card = response.json()
    assert card["sport"] == "other"
    assert card["cardSet"] == ""
    assert card["purchasePrice"] == 0
    assert card["currentValue"] == 0


def test_create_card_rejects_invalid_payload(client):
    response = client.post("/api/cards", json={"sport": "soccer", "year": 2020})
    assert response.status_code == 400
    message = response.json()["message"]
    assert message.startswith("Validation error: ")
    assert "playerName" in message

    response = client.post(
        "/api/cards",
        json={"playerName": "X", "year": 2020, "brand": "Topps", "condition": "raw", "purchasePrice": -1},
    )
    assert response.status_code == 400
    assert client.get("/api/cards").json() == []


def test_get_missing_card_returns_404(client):
    response = client.get("/api/cards/999")
    assert response.status_code == 404
    assert response.json() == {"message": "Card not found"}


def test_non_numeric_id_is_a_bad_request(client):
    assert client.get("/api/cards/abc").status_code == 400


def test_update_changes_only_supplied_fields(client, make_card):
    card = make_card()
    response = client.patch(f"/api/cards/{card['id']}", json={"currentValue": 42.5})
    assert response.status_code == 200
    updated = response.json()
    assert updated["currentValue"] == 42.5
    assert updated["playerName"] == card["playerName"]
    assert updated["purchasePrice"] == card["purchasePrice"]


def test_empty_update_returns_card_unchanged(client, make_card):
    card = make_card()
    response = client.patch(f"/api/cards/{card['id']}", json={})
    assert response.status_code == 200
    assert response.json() == card


def test_update_rejects_null_and_missing_cards(client, make_card):
    card = make_card()
    assert client.patch(f"/api/cards/{card['id']}", json={"playerName": None}).status_code == 400
    assert client.patch("/api/cards/999", json={"notes": "x"}).status_code == 404


def test_delete_card(client, make_card):
    card = make_card()
    response = client.delete(f"/api/cards/{card['id']}")
    assert response.status_code == 204
    assert response.content == b""
    assert client.get(f"/api/cards/{card['id']}").status_code == 404
    assert client.delete(f"/api/cards/{card['id']}").status_code == 404


def test_delete_all_reports_count(client, make_card):
    for name in ("A", "B", "C"):
        make_card(playerName=name)

    response = client.delete("/api/cards")
    assert response.status_code == 200
    assert response.json() == {"message": "Successfully deleted 3 cards", "count": 3}
    assert client.get("/api/cards").json() == []

    response = client.delete("/api/cards")
    assert response.json()["count"] == 0


def test_list_defaults_to_newest_id_first(client, make_card):
    first = make_card(playerName="First")
    second = make_card(playerName="Second")
    ids = [card["id"] for card in client.get("/api/cards").json()]
    assert ids == [second["id"], first["id"]]


def test_list_filters(client, make_card):
    make_card(playerName="Mike Trout", sport="baseball", year=2011, brand="Topps", condition="psa10")
    make_card(playerName="Lebron James", sport="basketball", year=2003, brand="Upper Deck", condition="raw")
    make_card(playerName="Erling Haaland", sport="soccer", year=2015, brand="Panini", cardSet="Topps Chrome")

    def names(**params):
        return sorted(card["playerName"] for card in client.get("/api/cards", params=params).json())

    assert names(sport="baseball") == ["Mike Trout"]
    assert names(sport="all") == ["Erling Haaland", "Lebron James", "Mike Trout"]
    assert names(year="2010-2019") == ["Erling Haaland", "Mike Trout"]
    assert names(year="2003") == ["Lebron James"]
    assert names(brand="Upper Deck") == ["Lebron James"]
    assert names(condition="psa10") == ["Mike Trout"]
    # brand and card set are both searched, case-insensitively
    assert names(search="topps") == ["Erling Haaland", "Mike Trout"]
    assert names(search="LEBRON") == ["Lebron James"]
    assert names(sport="baseball", year="2003") == []


def test_list_sort_options(client, make_card):
    make_card(playerName="Bravo", currentValue=5, year=2001)
    make_card(playerName="Alpha", currentValue=50, year=2020)
    make_card(playerName="Charlie", currentValue=20, year=2010)

    def names(sort_by):
        return [card["playerName"] for card in client.get("/api/cards", params={"sortBy": sort_by}).json()]

    assert names("playerNameAsc") == ["Alpha", "Bravo", "Charlie"]
    assert names("playerNameDesc") == ["Charlie", "Bravo", "Alpha"]
    assert names("valueDesc") == ["Alpha", "Charlie", "Bravo"]
    assert names("valueAsc") == ["Bravo", "Charlie", "Alpha"]
    assert names("yearAsc") == ["Bravo", "Charlie", "Alpha"]
    assert names("yearDesc") == ["Alpha", "Charlie", "Bravo"]
    assert names("recent") == ["Charlie", "Alpha", "Bravo"]


def test_malformed_year_filter_is_rejected(client, make_card):
    make_card()
    response = client.get("/api/cards", params={"year": "twenty"})
    assert response.status_code == 400
    assert "Invalid year filter" in response.json()["message"]


def test_search_treats_wildcards_literally(client, make_card):
    make_card(playerName="Mike Trout", notes="")
    make_card(playerName="Half_Price", notes="100% graded")

    def names(search):
        return [card["playerName"] for card in client.get("/api/cards", params={"search": search}).json()]

    assert names("_") == ["Half_Price"]
    assert names("%") == ["Half_Price"]
    assert names("f_p") == ["Half_Price"]
    assert names("t%t") == []


def test_every_sort_option_has_an_order(client, make_card):
    assert set(SORT_ORDERS) == set(SORT_OPTIONS)
    make_card()
    for sort_by in SORT_OPTIONS + ["unknown"]:
        assert client.get("/api/cards", params={"sortBy": sort_by}).status_code == 200
    assert client.post(
        "/api/cards", json={"playerName": "X", "year": 2020, "brand": "Topps", "condition": "raw"}
    ).json()["sport"] in SPORT_OPTIONS


def test_parse_year_filter():
    assert parse_year_filter("2015") == (2015, 2015)
    assert parse_year_filter("2010-2019") == (2010, 2019)
    with pytest.raises(InvalidFilterError):
        parse_year_filter("2010-")


def test_stats(client, make_card):
    make_card(sport="soccer", purchasePrice=10, currentValue=15)
    make_card(sport="soccer", purchasePrice=30, currentValue=45)
    make_card(sport="baseball", purchasePrice=0, currentValue=10)

    stats = client.get("/api/cards/stats").json()
    assert stats["totalCards"] == 3
    assert stats["totalValue"] == 70
    assert stats["totalPurchaseCost"] == 40
    assert stats["profitLossPercent"] == 75.0
    assert stats["sportCounts"] == {"soccer": 2, "baseball": 1}


def test_stats_without_purchase_cost(client):
    stats = client.get("/api/cards/stats").json()
    assert stats["totalCards"] == 0
    assert stats["profitLossPercent"] is None


def test_export_csv(client, make_card):
    make_card(playerName="Mike Trout", sport="baseball", notes="=HYPERLINK(\"x\")")
    make_card(playerName="Lionel Messi")

    response = client.get("/api/cards/export", params={"sport": "baseball"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "card-inventory.csv" in response.headers["content-disposition"]

    frame = pd.read_csv(io.StringIO(response.text), dtype=str, keep_default_na=False)
    assert list(frame.columns) == EXPORT_COLUMNS
    assert list(frame["playerName"]) == ["Mike Trout"]
    assert frame["notes"][0].startswith("'=")


def test_repository_round_trip(session):
    repository = CardRepository(session)
    card = repository.create(
        CardCreate(player_name="Wayne Gretzky", sport="hockey", year=1979, brand="O-Pee-Chee", condition="psa8")
    )
    assert repository.get(card.id).player_name == "Wayne Gretzky"

    updated = repository.update(card.id, CardUpdate(notes="Rookie"))
    assert updated.notes == "Rookie"
    assert updated.brand == "O-Pee-Chee"

    assert [c.id for c in repository.list(CardFilter(sport="hockey"))] == [card.id]
    assert repository.delete(card.id) is True
    assert repository.delete(card.id) is False
    assert repository.update(card.id, CardUpdate(notes="x")) is None


def test_user_owns_cards(session):
    users = UserRepository(session)
    user = users.create(UserCreate(username="collector", password="secret"))
    assert users.get_by_username("collector").id == user.id
    assert users.get_by_username("nobody") is None
    assert UserRead.model_validate(user).model_dump() == {"id": user.id, "username": "collector"}

    card = CardRepository(session).create(
        CardCreate(player_name="Mike Trout", year=2011, brand="Topps", condition="raw", user_id=user.id)
    )
    assert card.owner.username == "collector"
    assert [c.id for c in users.get(user.id).cards] == [card.id]
