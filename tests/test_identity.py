from storefront.context import RequestContext
from storefront.identity import AUTH_UNAVAILABLE_MESSAGE, IdentityResolver
from storefront.models import IdentityState, LoginForm, RegisterForm


def resolver(auth, cart_store):
    return IdentityResolver(auth, cart_store)


class TestResolve:
    async def test_anonymous_uses_session_id(self, auth, cart_store, anonymous_ctx):
        identity = await resolver(auth, cart_store).resolve(anonymous_ctx)
        assert identity.state == IdentityState.ANONYMOUS
        assert identity.identity == "session-123"
        assert not identity.clear_auth_cookies

    async def test_token_resolves_to_username_regardless_of_session(self, auth, cart_store):
        for session in ("session-a", "session-b", ""):
            ctx = RequestContext(session_id=session, auth_token="token-alice")
            identity = await resolver(auth, cart_store).resolve(ctx)
            assert identity.state == IdentityState.AUTHENTICATED
            assert identity.identity == "alice"
            assert identity.is_authenticated

    async def test_username_cookie_is_not_trusted(self, auth, cart_store):
        ctx = RequestContext(session_id="session-123", auth_token="token-alice", username="mallory")
        identity = await resolver(auth, cart_store).resolve(ctx)
        assert identity.identity == "alice"

    async def test_rejected_token_reverts_to_session(self, auth, cart_store):
        ctx = RequestContext(session_id="session-123", auth_token="stale", username="alice")
        identity = await resolver(auth, cart_store).resolve(ctx)
        assert identity.state == IdentityState.EXPIRED
        assert identity.identity == "session-123"
        assert identity.clear_auth_cookies
        assert not identity.is_authenticated
        assert ctx.clear_auth_cookies

    async def test_unreachable_auth_reverts_to_session(self, auth, cart_store, alice_ctx):
        auth.unavailable = True
        identity = await resolver(auth, cart_store).resolve(alice_ctx)
        assert identity.state == IdentityState.EXPIRED
        assert identity.identity == "session-123"

    async def test_authenticate_returns_profile(self, auth, cart_store, alice_ctx):
        identity, profile = await resolver(auth, cart_store).authenticate(alice_ctx)
        assert identity.username == "alice"
        assert profile.email == "alice@example.com"


class TestLogin:
    async def test_login_merges_anonymous_cart(self, auth, cart_store, anonymous_ctx):
        cart_store.put("session-123", {"A": 2, "B": 1})
        cart_store.put("alice", {"A": 1})

        result = await resolver(auth, cart_store).login(
            anonymous_ctx, LoginForm(email="alice@example.com", password="s3cret")
        )

        assert result.success
        assert result.username == "alice"
        assert result.token == "token-alice"
        assert cart_store.contents("alice") == {"A": 3, "B": 1}
        assert cart_store.contents("session-123") == {}
        assert not result.migration.degraded
        assert result.migration.value.migrated == 2
        assert result.migration.value.source_cleared

    async def test_bad_credentials(self, auth, cart_store, anonymous_ctx):
        cart_store.put("session-123", {"A": 2})
        result = await resolver(auth, cart_store).login(
            anonymous_ctx, LoginForm(email="alice@example.com", password="wrong")
        )
        assert not result.success
        assert result.error == "invalid email or password"
        assert result.migration is None
        assert cart_store.contents("session-123") == {"A": 2}

    async def test_auth_unavailable(self, auth, cart_store, anonymous_ctx):
        auth.unavailable = True
        result = await resolver(auth, cart_store).login(
            anonymous_ctx, LoginForm(email="alice@example.com", password="s3cret")
        )
        assert not result.success
        assert result.error == AUTH_UNAVAILABLE_MESSAGE

    async def test_no_migration_when_session_is_username(self, auth, cart_store):
        ctx = RequestContext(session_id="alice")
        result = await resolver(auth, cart_store).login(ctx, LoginForm(email="alice@example.com", password="s3cret"))
        assert result.success
        assert result.migration is None
        assert cart_store.calls == []


class TestMigrateCart:
    async def test_empty_anonymous_cart(self, auth, cart_store, anonymous_ctx):
        result = await resolver(auth, cart_store).migrate_cart(anonymous_ctx, "session-123", "alice")
        assert not result.degraded
        assert result.value.attempted == 0
        assert ("empty_cart", "session-123") not in cart_store.calls

    async def test_partial_failure_still_clears_anonymous_cart(self, auth, cart_store, anonymous_ctx):
        cart_store.put("session-123", {"A": 2, "B": 1, "C": 4})
        cart_store.failing_add_ids.add("B")

        result = await resolver(auth, cart_store).migrate_cart(anonymous_ctx, "session-123", "alice")

        assert result.degraded
        assert result.value.attempted == 3
        assert result.value.migrated == 2
        assert result.value.failed_product_ids == ["B"]
        assert result.value.source_cleared
        assert cart_store.contents("alice") == {"A": 2, "C": 4}
        assert cart_store.contents("session-123") == {}

    async def test_login_after_partial_failure_does_not_double_count(self, auth, cart_store, anonymous_ctx):
        cart_store.put("session-123", {"A": 2, "B": 1})
        cart_store.put("alice", {"A": 1})
        cart_store.failing_add_ids.add("B")
        form = LoginForm(email="alice@example.com", password="s3cret")

        await resolver(auth, cart_store).login(anonymous_ctx, form)
        cart_store.failing_add_ids.clear()
        second = await resolver(auth, cart_store).login(anonymous_ctx, form)

        assert cart_store.contents("alice") == {"A": 3}
        assert cart_store.contents("session-123") == {}
        assert second.migration.value.attempted == 0

    async def test_unreadable_anonymous_cart(self, auth, cart_store, anonymous_ctx):
        cart_store.failing_users.add("session-123")
        result = await resolver(auth, cart_store).migrate_cart(anonymous_ctx, "session-123", "alice")
        assert result.degraded
        assert result.value.attempted == 0
        assert cart_store.contents("alice") == {}

    async def test_clear_failure_is_reported(self, auth, cart_store, anonymous_ctx):
        cart_store.put("session-123", {"A": 1})
        cart_store.fail_empty = True
        result = await resolver(auth, cart_store).migrate_cart(anonymous_ctx, "session-123", "alice")
        assert result.degraded
        assert result.value.migrated == 1
        assert not result.value.source_cleared
        assert cart_store.contents("alice") == {"A": 1}


class TestRegister:
    async def test_register(self, auth, cart_store, anonymous_ctx):
        form = RegisterForm(email="bob@example.com", username="bob", password="pw", first_name="Bob")
        result = await resolver(auth, cart_store).register(anonymous_ctx, form)
        assert result.success
        assert auth.registered[0].first_name == "Bob"

    async def test_register_rejected(self, auth, cart_store, anonymous_ctx):
        form = RegisterForm(email="other@example.com", username="alice", password="pw")
        result = await resolver(auth, cart_store).register(anonymous_ctx, form)
        assert not result.success
        assert result.error == "username already taken"
