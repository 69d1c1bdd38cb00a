"""HTTP API tests for activities, claims, viewport, leaderboard and seasons."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.conftest import auth_headers, give_cells, make_activity, make_season, make_user, sf_cells
from turf.auth.jwt import create_access_token
from turf.geo.indexer import cell_for_point

SF_VIEWPORT = {"north": 37.78, "south": 37.77, "east": -122.41, "west": -122.42, "res": 9}
TRACK = {
    "type": "Feature",
    "properties": {},
    "geometry": {"type": "LineString", "coordinates": [[-122.42, 37.77], [-122.415, 37.775]]},
}


class TestAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/api/v1/users/me"),
            ("GET", "/api/v1/activities"),
            ("POST", "/api/v1/territory/claim"),
            ("GET", "/api/v1/territory/viewport"),
            ("GET", "/api/v1/leaderboard"),
            ("GET", "/api/v1/seasons"),
        ],
    )
    async def test_requires_token(self, client: AsyncClient, method, path):
        response = await client.request(method, path)
        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_missing_user(self, client: AsyncClient):
        headers = {"Authorization": f"Bearer {create_access_token(424242)}"}
        response = await client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    @pytest.mark.asyncio
    async def test_inactive_user(self, client: AsyncClient, db_session):
        inactive = await make_user(db_session, "Retired Runner", is_active=False)
        response = await client.get("/api/v1/users/me", headers=auth_headers(inactive))
        assert response.status_code == 403


class TestActivityFlow:
    @pytest.mark.asyncio
    async def test_start_end_cells_claim(self, authed_client: AsyncClient, user):
        response = await authed_client.post("/api/v1/activities", json={"type": "RUN"})
        assert response.status_code == 201
        activity = response.json()
        assert activity["end_ts"] is None

        response = await authed_client.post(
            f"/api/v1/activities/{activity['id']}/end",
            json={"distance_m": 800, "duration_s": 300, "track": TRACK},
        )
        assert response.status_code == 200
        assert response.json()["end_ts"] is not None

        response = await authed_client.get(f"/api/v1/activities/{activity['id']}/cells", params={"res": 9})
        assert response.status_code == 200
        cells = response.json()["cells"]
        assert cell_for_point(37.77, -122.42, 9) in cells

        response = await authed_client.post(
            "/api/v1/territory/claim", json={"activity_id": activity["id"], "cells": cells}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["cell_count"] == len(cells)
        assert data["season_id"] is None

        me = (await authed_client.get("/api/v1/users/me")).json()
        assert me["tiles_owned"] == len(cells)
        assert me["id"] == user.id

    @pytest.mark.asyncio
    async def test_speed_violation(self, authed_client: AsyncClient):
        activity = (await authed_client.post("/api/v1/activities", json={"type": "WALK"})).json()

        response = await authed_client.post(
            f"/api/v1/activities/{activity['id']}/end", json={"distance_m": 5000, "duration_s": 1700}
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "speed_limit_exceeded"
        assert body["detail"] == "Walking speed exceeds realistic limits"
        assert body["ceiling_kmh"] == 10.0
        still_open = (await authed_client.get(f"/api/v1/activities/{activity['id']}")).json()
        assert still_open["end_ts"] is None

    @pytest.mark.asyncio
    async def test_end_twice_conflicts(self, authed_client: AsyncClient):
        activity = (await authed_client.post("/api/v1/activities", json={"type": "RIDE"})).json()
        end = f"/api/v1/activities/{activity['id']}/end"
        await authed_client.post(end, json={"distance_m": 10000, "duration_s": 1800})

        response = await authed_client.post(end, json={"distance_m": 10000, "duration_s": 1800})

        assert response.status_code == 409
        assert response.json()["error"] == "activity_already_closed"

    @pytest.mark.asyncio
    async def test_unknown_activity_type(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/activities", json={"type": "SWIM"})
        assert response.status_code == 422
        assert response.json()["error"] == "unknown_activity_type"

    @pytest.mark.asyncio
    async def test_negative_distance_is_a_validation_error(self, authed_client: AsyncClient):
        activity = (await authed_client.post("/api/v1/activities", json={"type": "RUN"})).json()
        response = await authed_client.post(
            f"/api/v1/activities/{activity['id']}/end", json={"distance_m": -1, "duration_s": 60}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_other_users_activity_is_not_found(self, authed_client: AsyncClient, db_session):
        other = await make_user(db_session, "Other Runner")
        activity = await make_activity(db_session, other)

        response = await authed_client.get(f"/api/v1/activities/{activity.id}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Activity not found or not owned by user"

    @pytest.mark.asyncio
    async def test_list(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/activities", json={"type": "RUN"})
        await authed_client.post("/api/v1/activities", json={"type": "WALK"})

        response = await authed_client.get("/api/v1/activities")

        assert response.status_code == 200
        assert len(response.json()["activities"]) == 2

    @pytest.mark.asyncio
    async def test_cells_without_track(self, authed_client: AsyncClient, db_session, user):
        activity = await make_activity(db_session, user)
        response = await authed_client.get(f"/api/v1/activities/{activity.id}/cells")
        assert response.status_code == 200
        assert response.json() == {"activity_id": activity.id, "resolution": 9, "cells": []}


class TestClaimApi:
    @pytest.mark.asyncio
    async def test_inactive_season(self, authed_client: AsyncClient, db_session, user):
        activity = await make_activity(db_session, user)
        season = await make_season(db_session, is_active=False)

        response = await authed_client.post(
            "/api/v1/territory/claim",
            json={"activity_id": activity.id, "season_id": season.id, "cells": sf_cells(3)},
        )

        assert response.status_code == 422
        assert response.json() == {
            "detail": "Invalid or inactive season",
            "error": "invalid_season",
            "retryable": False,
            "season_id": season.id,
        }

    @pytest.mark.asyncio
    async def test_open_activity(self, authed_client: AsyncClient, db_session, user):
        activity = await make_activity(db_session, user, closed=False)
        response = await authed_client.post(
            "/api/v1/territory/claim", json={"activity_id": activity.id, "cells": sf_cells(3)}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_cell(self, authed_client: AsyncClient, db_session, user):
        activity = await make_activity(db_session, user)
        response = await authed_client.post(
            "/api/v1/territory/claim", json={"activity_id": activity.id, "cells": ["zzz"]}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_cell"

    @pytest.mark.asyncio
    async def test_claim_in_season(self, authed_client: AsyncClient, db_session, user):
        activity = await make_activity(db_session, user)
        season = await make_season(db_session)
        cells = sf_cells(7)

        response = await authed_client.post(
            "/api/v1/territory/claim",
            json={"activity_id": activity.id, "season_id": season.id, "cells": cells},
        )

        assert response.status_code == 200
        assert response.json()["season_id"] == season.id
        me = (await authed_client.get("/api/v1/users/me", params={"season_id": season.id})).json()
        assert me["tiles_owned"] == 7
        assert (await authed_client.get("/api/v1/users/me")).json()["tiles_owned"] == 0


class TestViewportApi:
    @pytest.mark.asyncio
    async def test_unclaimed_and_owned_cells(self, authed_client: AsyncClient, db_session, user):
        owned = cell_for_point(37.775, -122.415, 9)
        await give_cells(db_session, user.id, [owned])

        response = await authed_client.get("/api/v1/territory/viewport", params=SF_VIEWPORT)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == len(data["cells"]) > 1
        by_cell = {c["h3_index"]: c for c in data["cells"]}
        assert by_cell[owned]["owner"] == {"id": user.id, "display_name": user.display_name, "color": user.color}
        unclaimed = [c for c in data["cells"] if c["h3_index"] != owned]
        assert all(c["owner"] is None for c in unclaimed)
        assert [c["h3_index"] for c in data["cells"]] == sorted(by_cell)

    @pytest.mark.asyncio
    async def test_season_scope(self, authed_client: AsyncClient, db_session, user):
        season = await make_season(db_session)
        owned = cell_for_point(37.775, -122.415, 9)
        await give_cells(db_session, user.id, [owned])

        response = await authed_client.get(
            "/api/v1/territory/viewport", params={**SF_VIEWPORT, "season_id": season.id}
        )

        assert all(c["owner"] is None for c in response.json()["cells"])

    @pytest.mark.asyncio
    async def test_orphaned_owner_placeholder(self, authed_client: AsyncClient, db_session):
        owned = cell_for_point(37.775, -122.415, 9)
        await give_cells(db_session, 9999, [owned])

        response = await authed_client.get("/api/v1/territory/viewport", params=SF_VIEWPORT)

        by_cell = {c["h3_index"]: c for c in response.json()["cells"]}
        assert by_cell[owned]["owner"] == {"id": 9999, "display_name": "Unknown", "color": "#999999"}

    @pytest.mark.asyncio
    async def test_inverted_box(self, authed_client: AsyncClient):
        params = {**SF_VIEWPORT, "north": 37.77, "south": 37.78}
        response = await authed_client.get("/api/v1/territory/viewport", params=params)
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_bbox"

    @pytest.mark.asyncio
    async def test_too_large(self, authed_client: AsyncClient):
        params = {"north": 40, "south": 30, "east": -110, "west": -120, "res": 12}
        response = await authed_client.get("/api/v1/territory/viewport", params=params)
        assert response.status_code == 422
        assert response.json()["error"] == "viewport_too_large"

    @pytest.mark.asyncio
    async def test_bad_resolution(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/territory/viewport", params={**SF_VIEWPORT, "res": 16})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_resolution"

    @pytest.mark.asyncio
    async def test_cell_lookup(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/territory/cell", params={"lat": 37.7749, "lng": -122.4194, "res": 9})
        assert response.status_code == 200
        assert response.json() == {"h3_index": cell_for_point(37.7749, -122.4194, 9), "resolution": 9}


class TestLeaderboardApi:
    @pytest.mark.asyncio
    async def test_ranked_entries(self, authed_client: AsyncClient, db_session, user):
        season = await make_season(db_session)
        rival = await make_user(db_session, "Rival Rider", "#123456")
        cells = sf_cells(5)
        await give_cells(db_session, user.id, cells[:2], season.id)
        await give_cells(db_session, rival.id, cells[2:], season.id)

        response = await authed_client.get("/api/v1/leaderboard", params={"season_id": season.id})

        assert response.status_code == 200
        data = response.json()
        assert data["season_id"] == season.id
        assert data["entries"] == [
            {"rank": 1, "user_id": rival.id, "display_name": "Rival Rider", "color": "#123456", "tiles_owned": 3},
            {"rank": 2, "user_id": user.id, "display_name": user.display_name, "color": user.color, "tiles_owned": 2},
        ]

    @pytest.mark.asyncio
    async def test_unknown_season(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard", params={"season_id": 404})
        assert response.status_code == 404
        assert response.json()["error"] == "season_not_found"


class TestSeasonsApi:
    @pytest.mark.asyncio
    async def test_list_and_filter(self, authed_client: AsyncClient, db_session):
        active = await make_season(db_session, "Spring 2026")
        await make_season(db_session, "Winter 2025", is_active=False)

        everything = (await authed_client.get("/api/v1/seasons")).json()["seasons"]
        only_active = (await authed_client.get("/api/v1/seasons", params={"active": "true"})).json()["seasons"]

        assert len(everything) == 2
        assert [s["id"] for s in only_active] == [active.id]

    @pytest.mark.asyncio
    async def test_get_one(self, authed_client: AsyncClient, db_session):
        season = await make_season(db_session)
        response = await authed_client.get(f"/api/v1/seasons/{season.id}")
        assert response.status_code == 200
        assert response.json()["name"] == "Spring 2026"

    @pytest.mark.asyncio
    async def test_missing(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/seasons/404")
        assert response.status_code == 404


class TestIdBounds:
    """Ids outside the BIGINT key range are rejected as input errors."""

    too_big = 2**63

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["activity_id", "season_id"])
    async def test_claim_body_ids(self, authed_client: AsyncClient, db_session, user, field):
        activity = await make_activity(db_session, user)
        body = {"activity_id": activity.id, "cells": sf_cells(2), field: 2**70}

        response = await authed_client.post("/api/v1/territory/claim", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_input"
        assert response.json()["retryable"] is False

    @pytest.mark.asyncio
    async def test_claim_rejects_zero_activity_id(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/territory/claim", json={"activity_id": 0, "cells": sf_cells(1)})
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path",
        [
            f"/api/v1/activities/{too_big}",
            f"/api/v1/activities/{too_big}/cells",
            f"/api/v1/seasons/{too_big}",
        ],
    )
    async def test_path_ids(self, authed_client: AsyncClient, path):
        response = await authed_client.get(path)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_end_activity_path_id(self, authed_client: AsyncClient):
        response = await authed_client.post(
            f"/api/v1/activities/{self.too_big}/end", json={"distance_m": 1000, "duration_s": 600}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("path", "params"),
        [
            ("/api/v1/leaderboard", {}),
            ("/api/v1/users/me", {}),
            ("/api/v1/territory/viewport", SF_VIEWPORT),
        ],
    )
    async def test_season_query_ids(self, authed_client: AsyncClient, path, params):
        response = await authed_client.get(path, params={**params, "season_id": self.too_big})
        assert response.status_code == 422
