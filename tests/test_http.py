import asyncio
import json

from aiohttp import test_utils

from conftest import VALID_ENROLLMENT
from core.database import Database
from core.models import CodeType
from payment.link_payment import PaymentLinkProcessor, sign_webhook_body
from run_server import create_app


def _run(catalog, scenario, payment_processor=None):
    async def wrapper():
        app = create_app(db=Database(":memory:"), catalog=catalog, payment_processor=payment_processor)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            return await scenario(app, client)

    return asyncio.run(wrapper())


def test_health(catalog) -> None:
    async def scenario(app, client):
        resp = await client.get("/health")
        return resp.status, await resp.text()

    assert _run(catalog, scenario) == (200, "OK")


def test_verify_and_price(catalog) -> None:
    async def scenario(app, client):
        await app["db"].create_referral_code(
            "FRIEND20", CodeType.REFERRAL, 20, referrer_name="Asha",
            payment_link2="https://rzp.io/ref-pro",
        )
        ok = await client.post("/api/referral-codes/verify", json={"code": "friend20", "package": "professional"})
        bad = await client.post("/api/referral-codes/verify", json={"code": "nope"})
        price = await client.post("/api/pricing", json={"package": "professional", "referral_code": "FRIEND20"})
        unknown = await client.post("/api/pricing", json={"package": "platinum"})
        broken = await client.post("/api/pricing", data="not json")
        return (
            ok.status, await ok.json(),
            bad.status, await bad.json(),
            price.status, await price.json(),
            unknown.status, broken.status,
        )

    ok_status, ok, bad_status, bad, price_status, price, unknown_status, broken_status = _run(catalog, scenario)
    assert ok_status == 200
    assert ok["referrer_name"] == "Asha"
    assert ok["pricing"]["final_price"] == 7680
    assert ok["payment_link"] == "https://rzp.io/ref-pro"
    assert bad_status == 400
    assert bad == {"error": "Invalid code. Please check your code and try again.", "reason": "not_found"}
    assert price_status == 200
    assert price["pricing"] == {
        "original_price": 9600, "discount_percentage": 20, "discount_amount": 1920, "final_price": 7680,
    }
    assert unknown_status == 404
    assert broken_status == 400


def test_enroll_pay_and_access(catalog) -> None:
    async def scenario(app, client):
        signup = await client.post("/api/auth/sign-up", json={
            "full_name": "Ravi Kumar", "email": "ravi@example.com", "phone": "9876543210",
            "password": "secret1", "confirm_password": "secret1",
        })
        token = (await signup.json())["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        invalid = await client.post("/api/enrollments", json={
            "package": "starter", "form": dict(VALID_ENROLLMENT, pincode="123"),
        })
        enrolled = await client.post("/api/enrollments", json={
            "package": "professional", "course_id": "after-effects", "form": VALID_ENROLLMENT,
        })
        body = await enrolled.json()

        before = await (await client.get("/api/access?course_id=after-effects", headers=headers)).json()
        hook = await client.post("/payment/webhook", json={
            "payment_id": body["payment_id"], "enrollment_id": body["enrollment_id"],
            "status": "completed", "amount": body["pricing"]["final_price"],
        })
        after = await (await client.get("/api/access?course_id=after-effects", headers=headers)).json()
        anonymous = await (await client.get("/api/access")).json()
        return signup.status, invalid.status, await invalid.json(), enrolled.status, body, before, hook.status, after, anonymous

    signup, invalid_status, invalid, status, body, before, hook, after, anonymous = _run(catalog, scenario)
    assert signup == 201
    assert invalid_status == 400
    assert invalid["errors"] == {"pincode": "Pincode must be exactly 6 digits"}
    assert status == 201
    assert body["payment_status"] == "pending"
    assert body["pricing"]["final_price"] == 9600
    assert before["user_package"] is None
    assert before["course"]["has_access"] is False
    assert hook == 200
    assert after["user_package"] == "professional"
    assert after["available_courses"] == ["premiere-pro", "after-effects"]
    assert after["course"] == {
        "id": "after-effects", "has_access": True, "required_package": "professional", "can_upgrade": False,
    }
    assert anonymous == {"user_package": None, "available_courses": []}


def test_auth_and_earnings_errors(catalog) -> None:
    async def scenario(app, client):
        bad_signup = await client.post("/api/auth/sign-up", json={"email": "x"})
        await client.post("/api/auth/sign-up", json={
            "full_name": "Asha", "email": "asha@example.com",
            "password": "secret1", "confirm_password": "secret1",
        })
        duplicate = await client.post("/api/auth/sign-up", json={
            "full_name": "Asha", "email": "asha@example.com",
            "password": "secret1", "confirm_password": "secret1",
        })
        wrong = await client.post("/api/auth/sign-in", json={"email": "asha@example.com", "password": "nope"})
        signin = await client.post("/api/auth/sign-in", json={"email": "asha@example.com", "password": "secret1"})
        headers = {"Authorization": f"Bearer {(await signin.json())['access_token']}"}

        anonymous = await client.get("/api/earnings")
        no_code = await client.get("/api/earnings", headers=headers)
        await app["db"].create_referral_code(
            "ASHA2026", CodeType.AFFILIATE, 10, referrer_email="asha@example.com"
        )
        earnings = await client.get("/api/earnings", headers=headers)
        return (
            bad_signup.status, duplicate.status, wrong.status, await wrong.json(),
            anonymous.status, no_code.status, earnings.status, await earnings.json(),
        )

    bad_signup, duplicate, wrong, wrong_body, anonymous, no_code, status, report = _run(catalog, scenario)
    assert bad_signup == 400
    assert duplicate == 409
    assert wrong == 401
    assert wrong_body == {"error": "Invalid login credentials"}
    assert anonymous == 401
    assert no_code == 404
    assert status == 200
    assert report["affiliate_code"] == "ASHA2026"
    assert report["total_earnings"] == 0
    assert report["referred_users"] == []


def test_leads_endpoint(catalog) -> None:
    async def scenario(app, client):
        await app["db"].create_product("EDITING101", "Editing pack", "https://cdn.example.com/e.zip")
        payload = {"name": "Meera", "email": "meera@example.com", "phone": "9876543210", "product_code": "editing101"}
        first = await client.post("/api/leads", json=payload)
        again = await client.post("/api/leads", json=payload)
        invalid = await client.post("/api/leads", json=dict(payload, email="other@example.com", product_code="X"))
        return first.status, await first.json(), again.status, invalid.status

    first, body, again, invalid = _run(catalog, scenario)
    assert first == 201
    assert body["product"]["download_url"] == "https://cdn.example.com/e.zip"
    assert again == 409
    assert invalid == 404


def test_webhook_rejects_bad_payloads(catalog) -> None:
    async def scenario(app, client):
        broken = await client.post("/payment/webhook", data="{")
        ignored = await client.post("/payment/webhook", json={"status": "completed"})
        return broken.status, ignored.status, await ignored.text()

    assert _run(catalog, scenario) == (400, 200, "OK")


def test_sign_out_revokes_bearer_token(catalog) -> None:
    async def scenario(app, client):
        await app["db"].create_referral_code(
            "ASHA2026", CodeType.AFFILIATE, 10, referrer_email="asha@example.com"
        )
        signup = await client.post("/api/auth/sign-up", json={
            "full_name": "Asha", "email": "asha@example.com",
            "password": "secret1", "confirm_password": "secret1",
        })
        headers = {"Authorization": f"Bearer {(await signup.json())['access_token']}"}

        before = await client.get("/api/earnings", headers=headers)
        signed_out = await client.post("/api/auth/sign-out", headers=headers)
        after = await client.get("/api/earnings", headers=headers)
        again = await client.post("/api/auth/sign-out", headers=headers)
        return before.status, signed_out.status, after.status, again.status

    assert _run(catalog, scenario) == (200, 200, 401, 401)


def test_signed_webhooks(catalog) -> None:
    secret = "whsec_test"

    async def scenario(app, client):
        enrolled = await client.post("/api/enrollments", json={
            "package": "starter", "form": VALID_ENROLLMENT,
        })
        body = await enrolled.json()
        raw = json.dumps({
            "payment_id": body["payment_id"], "enrollment_id": body["enrollment_id"],
            "status": "completed", "amount": body["pricing"]["final_price"],
        }).encode()
        headers = {"Content-Type": "application/json"}

        unsigned = await client.post("/payment/webhook", data=raw, headers=headers)
        forged = await client.post(
            "/payment/webhook", data=raw,
            headers=dict(headers, **{"X-Webhook-Signature": sign_webhook_body("wrong", raw)}),
        )
        pending = (await app["db"].get_enrollment(body["enrollment_id"])).payment_status.value
        signed = await client.post(
            "/payment/webhook", data=raw,
            headers=dict(headers, **{"X-Webhook-Signature": sign_webhook_body(secret, raw)}),
        )
        completed = (await app["db"].get_enrollment(body["enrollment_id"])).payment_status.value
        return unsigned.status, forged.status, pending, signed.status, completed

    result = _run(catalog, scenario, payment_processor=PaymentLinkProcessor(secret))
    assert result == (401, 401, "pending", 200, "completed")
