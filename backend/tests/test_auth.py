"""
Auth API tests: signup, login, session cookie, profile and account management.
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

import config
from auth import ALGORITHM, COOKIE_NAME, create_access_token
from conftest import create_post, signup


# =============================================================================
# SIGNUP
# =============================================================================
class TestSignup:

    def test_signup_returns_public_user(self, client):
        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw123456", "name": "Ann"})

        assert resp.status_code == 201
        user = resp.json()["user"]
        assert user["email"] == "a@x.com"
        assert user["name"] == "Ann"
        assert set(user) == {"id", "email", "name"}
        assert "passwordHash" not in resp.text
        assert "pw123456" not in resp.text

    def test_signup_sets_session_cookie(self, client):
        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw123456", "name": "Ann"})

        set_cookie = resp.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE_NAME}=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()
        assert "Max-Age=604800" in set_cookie
        assert "Path=/" in set_cookie
        assert client.get("/api/auth/me").status_code == 200

    def test_signup_trims_name(self, client):
        user = signup(client, name="  Ann  ")
        assert user["name"] == "Ann"

    def test_duplicate_email_conflicts(self, client):
        signup(client)
        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "other123", "name": "Bob"})

        assert resp.status_code == 409
        assert resp.json() == {"error": "Email already registered"}

    def test_missing_fields_rejected(self, client):
        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "name": "Ann"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Email and password required"

        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw123456", "name": "   "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Name is required"

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw1", "name": "Ann"})
        assert resp.status_code == 400


# =============================================================================
# LOGIN / SESSION
# =============================================================================
class TestLogin:

    def test_login_success(self, client, make_client):
        signup(client)
        other = make_client()
        resp = other.post("/api/auth/login", json={"email": "a@x.com", "password": "pw123456"})

        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "a@x.com"
        me = other.get("/api/auth/me").json()["user"]
        assert me["lastLogin"] is not None
        assert me["provider"] == "local"

    def test_unknown_email_and_wrong_password_look_identical(self, client, make_client):
        signup(client)
        anon = make_client()

        wrong_pw = anon.post("/api/auth/login", json={"email": "a@x.com", "password": "nope-nope"})
        no_user = anon.post("/api/auth/login", json={"email": "ghost@x.com", "password": "pw123456"})

        assert wrong_pw.status_code == no_user.status_code == 401
        assert wrong_pw.json() == no_user.json() == {"error": "Invalid credentials"}

    def test_login_requires_both_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "a@x.com"})
        assert resp.status_code == 400

    def test_me_requires_cookie(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_tampered_token_rejected(self, client):
        signup(client)
        token = client.cookies.get(COOKIE_NAME)
        client.cookies.clear()
        client.cookies.set(COOKIE_NAME, token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB"))

        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid token"}

    def test_expired_token_rejected(self, client):
        user = signup(client)
        expired = jwt.encode(
            {"sub": user["id"], "id": user["id"], "email": user["email"], "name": user["name"],
             "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            config.safe_jwt_secret, algorithm=ALGORITHM,
        )
        client.cookies.clear()
        client.cookies.set(COOKIE_NAME, expired)

        assert client.get("/api/auth/me").status_code == 401

    def test_token_signed_with_other_secret_rejected(self, client):
        user = signup(client)
        forged = jwt.encode({"id": user["id"], "email": user["email"], "name": user["name"]}, "guess", algorithm=ALGORITHM)
        client.cookies.clear()
        client.cookies.set(COOKIE_NAME, forged)

        assert client.get("/api/auth/me").status_code == 401

    def test_me_for_deleted_user_is_404(self, client):
        client.cookies.set(COOKIE_NAME, create_access_token({"id": "missing", "email": "m@x.com", "name": "M"}))
        resp = client.get("/api/auth/me")
        assert resp.status_code == 404
        assert resp.json() == {"error": "User not found"}

    def test_logout_clears_cookie(self, client):
        signup(client)
        resp = client.post("/api/auth/logout")

        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        assert client.get("/api/auth/me").status_code == 401

    def test_logout_without_session_still_succeeds(self, client):
        assert client.post("/api/auth/logout").json() == {"ok": True}


# =============================================================================
# PROFILE / PASSWORD / ACCOUNT
# =============================================================================
class TestProfile:

    def test_update_profile_keeps_old_author_name_on_posts(self, client):
        signup(client)
        post = create_post(client, status="published")

        resp = client.put("/api/auth/profile", json={"name": "  Annie "})
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Annie"

        fetched = client.get(f"/api/posts/{post['id']}").json()["post"]
        assert fetched["authorName"] == "Ann"
        assert fetched["author"]["name"] == "Annie"

    def test_new_content_uses_updated_name(self, client):
        signup(client)
        client.put("/api/auth/profile", json={"name": "Annie"})
        claims = jwt.decode(client.cookies.get(COOKIE_NAME), config.safe_jwt_secret, algorithms=[ALGORITHM])
        assert claims["name"] == "Annie"

        post = create_post(client)
        comment = client.post(f"/api/posts/{post['id']}/comments", json={"content": "hi"}).json()["post"]["comments"][0]

        assert post["authorName"] == "Annie"
        assert comment["authorName"] == "Annie"

    def test_update_profile_requires_name(self, client):
        signup(client)
        assert client.put("/api/auth/profile", json={"name": " "}).status_code == 400
        assert client.put("/api/auth/profile", json={}).status_code == 400

    def test_update_profile_requires_auth(self, client):
        assert client.put("/api/auth/profile", json={"name": "X"}).status_code == 401

    def test_change_password(self, client, make_client):
        signup(client)
        resp = client.put("/api/auth/password", json={"currentPassword": "pw123456", "newPassword": "newpass99"})
        assert resp.status_code == 200

        other = make_client()
        assert other.post("/api/auth/login", json={"email": "a@x.com", "password": "pw123456"}).status_code == 401
        assert other.post("/api/auth/login", json={"email": "a@x.com", "password": "newpass99"}).status_code == 200

    def test_change_password_checks_current(self, client):
        signup(client)
        resp = client.put("/api/auth/password", json={"currentPassword": "wrong-one", "newPassword": "newpass99"})
        assert resp.status_code == 401

    def test_delete_account_cascades_to_posts(self, client, make_client):
        signup(client)
        mine = create_post(client, status="published")

        bob = make_client()
        signup(bob, email="b@x.com", name="Bob")
        theirs = create_post(bob, status="published")
        client.post(f"/api/posts/{theirs['id']}/like")
        client.post(f"/api/posts/{theirs['id']}/comments", json={"content": "nice"})

        resp = client.delete("/api/auth/account")
        assert resp.status_code == 200
        assert client.get("/api/auth/me").status_code == 401

        assert bob.get(f"/api/posts/{mine['id']}").status_code == 404
        remaining = bob.get(f"/api/posts/{theirs['id']}").json()["post"]
        assert remaining["likesCount"] == 0
        assert [c["authorName"] for c in remaining["comments"]] == ["Ann"]

        again = make_client()
        assert again.post("/api/auth/login", json={"email": "a@x.com", "password": "pw123456"}).status_code == 401


# =============================================================================
# PASSWORD RESET
# =============================================================================
class TestPasswordReset:

    def test_reset_flow_is_single_use(self, client, make_client):
        signup(client)
        anon = make_client()

        resp = anon.post("/api/auth/forgot-password", json={"email": "a@x.com"})
        assert resp.status_code == 200
        token = resp.json()["resetToken"]

        assert anon.post("/api/auth/reset-password", json={"token": token, "password": "fresh-pass"}).status_code == 200
        assert anon.post("/api/auth/login", json={"email": "a@x.com", "password": "fresh-pass"}).status_code == 200

        reused = anon.post("/api/auth/reset-password", json={"token": token, "password": "another1"})
        assert reused.status_code == 400
        assert reused.json() == {"error": "Invalid or expired reset token"}

    def test_unknown_email_does_not_leak(self, client):
        resp = client.post("/api/auth/forgot-password", json={"email": "ghost@x.com"})
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_bogus_token_rejected(self, client):
        resp = client.post("/api/auth/reset-password", json={"token": "nope", "password": "fresh-pass"})
        assert resp.status_code == 400


class TestGoogleRoutes:

    def test_google_login_unavailable_without_credentials(self, client):
        resp = client.get("/api/auth/google", follow_redirects=False)
        assert resp.status_code == 503
        assert "error" in resp.json()
