import jwt

from identity_platform.identity_platform.identity_service.models import RefreshToken, User

from .conftest import ACCESS_SECRET


def signup(client, first_name="Ana", last_name="Lee", email="ana@x.com", password="pw1234"):
    return client.post(
        "/auth/signup",
        json={"first_name": first_name, "last_name": last_name, "email": email, "password": password},
    )


def test_signup_then_login_scenario(client):
    register = signup(client)
    assert register.status_code == 201
    body = register.json()
    assert body["user"]["email"] == "ana@x.com"
    assert body["user"]["first_name"] == "Ana"
    assert body["token_type"] == "bearer"

    login = client.post("/auth/login", json={"email": "ana@x.com", "password": "pw1234"})
    assert login.status_code == 200
    tokens = login.json()
    assert tokens["access_token"]
    assert tokens["refresh_token"]
    claims = jwt.decode(tokens["access_token"], ACCESS_SECRET, algorithms=["HS256"])
    assert claims["full_name"] == "Ana Lee"
    assert claims["email"] == "ana@x.com"

    bad_login = client.post("/auth/login", json={"email": "ana@x.com", "password": "wrong"})
    assert bad_login.status_code == 400
    assert bad_login.json()["error"] == "invalid_credentials"


def test_signup_response_hides_credentials(client):
    body = signup(client).json()
    assert set(body["user"]) == {"id", "first_name", "last_name", "email"}
    assert "pw1234" not in str(body)


def test_signup_stores_hash_not_plaintext(client, db_session):
    signup(client)
    user = db_session.query(User).filter(User.email == "ana@x.com").one()
    assert user.password_hash != "pw1234"


def test_signup_duplicate_email(client, db_session):
    assert signup(client).status_code == 201

    duplicate = signup(client, first_name="Other", email="ANA@x.com", password="another1")
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "duplicate_email"

    users = db_session.query(User).all()
    assert len(users) == 1
    assert users[0].first_name == "Ana"


def test_signup_missing_fields(client):
    response = client.post("/auth/signup", json={"email": "ana@x.com", "password": "pw1234"})
    assert response.status_code == 422


def test_signup_rejects_invalid_input(client):
    assert signup(client, first_name="   ").status_code == 422
    assert signup(client, email="not-an-email").status_code == 422
    assert signup(client, password="abc").status_code == 422
    assert signup(client, password="x" * 5000).status_code == 422
    # Under the character limit but over the byte limit once encoded
    assert signup(client, password="é" * 3000).status_code == 422


def test_login_with_oversized_password_does_not_reveal_account(client):
    signup(client)
    oversized = "x" * 5000

    known_email = client.post("/auth/login", json={"email": "ana@x.com", "password": oversized})
    unknown_email = client.post("/auth/login", json={"email": "nobody@x.com", "password": oversized})

    assert known_email.status_code == unknown_email.status_code
    assert known_email.status_code < 500
    assert known_email.json() == unknown_email.json()


def test_login_errors_are_identical_for_unknown_email_and_wrong_password(client):
    signup(client)

    wrong_password = client.post("/auth/login", json={"email": "ana@x.com", "password": "wrong"})
    unknown_email = client.post("/auth/login", json={"email": "nobody@x.com", "password": "pw1234"})

    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()


def test_login_appends_refresh_token_hash(client, db_session):
    signup(client)
    client.post("/auth/login", json={"email": "ana@x.com", "password": "pw1234"})
    client.post("/auth/login", json={"email": "ana@x.com", "password": "pw1234"})

    user = db_session.query(User).filter(User.email == "ana@x.com").one()
    # one from signup, two from logins
    assert len(user.refresh_token_hashes) == 3


def test_refresh_issues_new_tokens(client, db_session):
    tokens = signup(client).json()

    response = client.post("/auth/token/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    renewed = response.json()
    assert renewed["access_token"]
    assert renewed["refresh_token"] != tokens["refresh_token"]

    me = client.get("/users/me", headers={"Authorization": f"Bearer {renewed['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "ana@x.com"
    assert db_session.query(RefreshToken).count() == 2


def test_refresh_rejects_revoked_token(client, db_session):
    tokens = signup(client).json()
    db_session.query(RefreshToken).delete()
    db_session.commit()

    response = client.post("/auth/token/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 401
    assert response.json()["error"] == "token_invalid"


def test_refresh_rejects_access_token(client):
    tokens = signup(client).json()
    response = client.post("/auth/token/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


def test_users_me_requires_bearer_token(client):
    signup(client)
    response = client.get("/users/me", headers={"Authorization": "Basic xyz"})
    assert response.status_code == 401
    assert response.json()["error"] == "access_token_invalid"


def test_fetch_user_profile(client):
    ana = signup(client).json()
    bob = signup(client, first_name="Bob", last_name="Ray", email="bob@x.com").json()
    headers = {"Authorization": f"Bearer {ana['access_token']}"}

    response = client.get(f"/users/{bob['user']['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == bob["user"]

    missing = client.get("/users/does-not-exist", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
