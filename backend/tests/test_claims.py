"""Tests for supplier claims: email verification and admin review."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from kindred.models import (
    ClaimStatus, Organisation, OrganisationMember, OrganisationRole, Supplier, SupplierClaim, SupplierClaimStatus,
    UserRole,
)
from kindred.services.claims import generate_verification_code


def _start(client, slug="bottle-works", email="ops@bottleworks.example.com"):
    return client.post(f"/api/suppliers/{slug}/claim", json={"companyEmail": email})


def _verify(client, code, slug="bottle-works"):
    return client.patch(f"/api/suppliers/{slug}/claim", json={"verificationCode": code})


def _supplier(db, supplier_id):
    db.expire_all()
    return db.query(Supplier).filter(Supplier.id == supplier_id).one()


@pytest.fixture
def claimant(make_user):
    return make_user(email="founder@bottleworks.example.com", role=UserRole.SUPPLIER)


class TestVerificationCode:

    def test_six_digits(self):
        for _ in range(50):
            code = generate_verification_code()
            assert len(code) == 6
            assert 100000 <= int(code) <= 999999


class TestInitiateClaim:
    """POST /api/suppliers/{slug}/claim"""

    def test_opens_pending_claim(self, client_for, db, claimant, make_supplier, no_email):
        supplier = make_supplier()

        response = _start(client_for(claimant))

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["claim"]["status"] == "PENDING"
        assert len(body["data"]["verificationCode"]) == 6
        assert "verificationCode" not in body["data"]["claim"]
        assert _supplier(db, supplier.id).claim_status == ClaimStatus.PENDING
        assert no_email.call_args.args[0] == "ops@bottleworks.example.com"
        assert body["data"]["verificationCode"] in no_email.call_args.args[2]

    def test_code_hidden_outside_development(self, client_for, claimant, make_supplier):
        make_supplier()
        with patch("kindred.core.config.ENVIRONMENT", "production"):
            response = _start(client_for(claimant))
        assert "verificationCode" not in response.json()["data"]

    def test_requires_company_email(self, client_for, claimant, make_supplier):
        make_supplier()
        response = _start(client_for(claimant), email="")
        assert response.status_code == 400
        assert response.json()["error"] == "Company email is required for verification"

    def test_unknown_supplier(self, client_for, claimant):
        response = _start(client_for(claimant), slug="nobody")
        assert response.status_code == 404
        assert response.json()["error"] == "Supplier not found"

    def test_already_claimed(self, client_for, claimant, make_user, make_supplier):
        make_supplier(user=make_user(role=UserRole.SUPPLIER))
        response = _start(client_for(claimant))
        assert response.status_code == 400
        assert response.json()["error"] == "This supplier profile has already been claimed"

    def test_duplicate_pending_claim(self, client_for, claimant, make_supplier):
        make_supplier()
        claimant_client = client_for(claimant)
        _start(claimant_client)

        response = _start(claimant_client)

        assert response.status_code == 400
        assert response.json()["error"] == "You already have a pending claim for this supplier"

    def test_owner_of_another_supplier(self, client_for, claimant, make_supplier):
        make_supplier("Own Glass", user=claimant)
        make_supplier()
        response = _start(client_for(claimant))
        assert response.json()["error"] == "You already own a supplier profile"

    def test_requires_login(self, client, make_supplier):
        make_supplier()
        assert _start(client).status_code == 401


class TestVerifyClaim:
    """PATCH /api/suppliers/{slug}/claim"""

    def test_correct_code_claims_supplier_and_creates_organisation(self, client_for, db, claimant, make_supplier):
        supplier = make_supplier()
        claimant_client = client_for(claimant)
        code = _start(claimant_client).json()["data"]["verificationCode"]

        response = _verify(claimant_client, code)

        assert response.status_code == 200
        data = response.json()["data"]["claim"]
        assert data["status"] == "CLAIMED"
        assert data["processedAt"] is not None
        assert data["supplier"]["claimStatus"] == "CLAIMED"

        stored = _supplier(db, supplier.id)
        assert stored.user_id == claimant.id
        organisation = db.query(Organisation).filter(Organisation.supplier_id == supplier.id).one()
        assert organisation.name == "Bottle Works"
        membership = db.query(OrganisationMember).filter(OrganisationMember.user_id == claimant.id).one()
        assert membership.organisation_id == organisation.id
        assert membership.role == OrganisationRole.OWNER

    def test_existing_member_keeps_organisation(self, client_for, db, claimant, make_user, make_organisation,
                                                make_supplier):
        make_organisation(make_user(role=UserRole.BRAND), members={claimant: OrganisationRole.MEMBER})
        make_supplier()
        claimant_client = client_for(claimant)
        code = _start(claimant_client).json()["data"]["verificationCode"]

        assert _verify(claimant_client, code).status_code == 200
        db.expire_all()
        assert db.query(Organisation).count() == 1

    def test_wrong_code_leaves_claim_pending(self, client_for, db, claimant, make_supplier):
        supplier = make_supplier()
        claimant_client = client_for(claimant)
        code = _start(claimant_client).json()["data"]["verificationCode"]
        wrong = "000000" if code != "000000" else "111111"

        response = _verify(claimant_client, wrong)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid verification code"
        assert _supplier(db, supplier.id).claim_status == ClaimStatus.PENDING
        claim = db.query(SupplierClaim).one()
        assert claim.status == SupplierClaimStatus.PENDING
        assert claim.failed_attempts == 1

    def test_attempts_are_capped(self, client_for, db, claimant, make_supplier):
        make_supplier()
        claimant_client = client_for(claimant)
        code = _start(claimant_client).json()["data"]["verificationCode"]
        wrong = "000000" if code != "000000" else "111111"
        for _ in range(5):
            assert _verify(claimant_client, wrong).status_code == 400

        response = _verify(claimant_client, code)

        assert response.status_code == 429
        assert response.json()["error"] == (
            "Too many failed verification attempts. Contact support to complete your claim."
        )
        db.expire_all()
        assert db.query(SupplierClaim).one().status == SupplierClaimStatus.PENDING

    def test_requires_code(self, client_for, claimant, make_supplier):
        make_supplier()
        response = _verify(client_for(claimant), "")
        assert response.status_code == 400
        assert response.json()["error"] == "Verification code is required"

    def test_no_pending_claim(self, client_for, claimant, make_supplier):
        make_supplier()
        response = _verify(client_for(claimant), "123456")
        assert response.status_code == 404
        assert response.json()["error"] == "No pending claim found for this supplier"

    def test_failed_commit_rolls_back_everything(self, client_for, db, claimant, make_supplier):
        supplier = make_supplier()
        claimant_client = client_for(claimant)
        code = _start(claimant_client).json()["data"]["verificationCode"]

        with patch("kindred.services.claims.build_organisation", side_effect=SQLAlchemyError("boom")):
            response = _verify(claimant_client, code)

        assert response.status_code == 500
        stored = _supplier(db, supplier.id)
        assert stored.user_id is None
        assert stored.claim_status == ClaimStatus.PENDING
        assert db.query(SupplierClaim).one().status == SupplierClaimStatus.PENDING
        assert db.query(Organisation).count() == 0

    def test_second_claimant_cannot_take_claimed_supplier(self, client_for, db, claimant, make_user,
                                                          make_organisation, make_supplier):
        supplier = make_supplier()
        rival = make_user(email="rival@example.com", role=UserRole.SUPPLIER)
        make_organisation(make_user(role=UserRole.BRAND), members={rival: OrganisationRole.MEMBER}, name="Rival Rum")
        claimant_client, rival_client = client_for(claimant), client_for(rival)
        claimant_code = _start(claimant_client).json()["data"]["verificationCode"]
        rival_code = _start(rival_client, email="ops@rival.example.com").json()["data"]["verificationCode"]
        assert _verify(claimant_client, claimant_code).status_code == 200

        response = _verify(rival_client, rival_code)

        assert response.status_code == 400
        assert response.json()["error"] == "This supplier profile has already been claimed"
        stored = _supplier(db, supplier.id)
        assert stored.user_id == claimant.id
        assert stored.claim_status == ClaimStatus.CLAIMED
        rival_claim = db.query(SupplierClaim).filter(SupplierClaim.user_id == rival.id).one()
        assert rival_claim.status == SupplierClaimStatus.REJECTED
        assert rival_claim.processed_at is not None


class TestAdminClaims:
    """/api/admin/claims"""

    @pytest.fixture
    def pending_claim(self, client_for, db, claimant, make_supplier):
        supplier = make_supplier()
        _start(client_for(claimant))
        db.expire_all()
        return db.query(SupplierClaim).filter(SupplierClaim.supplier_id == supplier.id).one()

    def test_approve(self, client_for, db, admin, claimant, pending_claim):
        response = client_for(admin).patch(
            f"/api/admin/claims/{pending_claim.id}", json={"status": "CLAIMED", "notes": "Checked by phone"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "CLAIMED"
        assert data["processedBy"] == admin.id
        assert data["notes"] == "Checked by phone"
        stored = _supplier(db, pending_claim.supplier_id)
        assert stored.user_id == claimant.id
        assert stored.claim_status == ClaimStatus.CLAIMED

    def test_approve_creates_supplier_organisation(self, client_for, db, admin, claimant, pending_claim):
        client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "CLAIMED"})

        db.expire_all()
        organisation = db.query(Organisation).filter(Organisation.supplier_id == pending_claim.supplier_id).one()
        assert organisation.name == "Bottle Works"
        membership = db.query(OrganisationMember).filter(OrganisationMember.user_id == claimant.id).one()
        assert membership.organisation_id == organisation.id
        assert membership.role == OrganisationRole.OWNER

    def test_approve_rejects_competing_claims(self, client_for, db, admin, make_user, pending_claim):
        rival = make_user(role=UserRole.SUPPLIER)
        rival_code = _start(client_for(rival)).json()["data"]["verificationCode"]

        client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "CLAIMED"})

        db.expire_all()
        rival_claim = db.query(SupplierClaim).filter(SupplierClaim.user_id == rival.id).one()
        assert rival_claim.status == SupplierClaimStatus.REJECTED
        assert rival_claim.processed_by == admin.id
        assert _verify(client_for(rival), rival_code).status_code == 400

    def test_reject_resets_supplier(self, client_for, db, admin, pending_claim):
        response = client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "rejected"})

        assert response.json()["data"]["status"] == "REJECTED"
        stored = _supplier(db, pending_claim.supplier_id)
        assert stored.claim_status == ClaimStatus.UNCLAIMED
        assert stored.user_id is None

    def test_reject_keeps_pending_while_other_claims_open(self, client_for, db, admin, make_user, pending_claim):
        rival = make_user(role=UserRole.SUPPLIER)
        _start(client_for(rival))

        client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "REJECTED"})

        assert _supplier(db, pending_claim.supplier_id).claim_status == ClaimStatus.PENDING

    def test_rejected_claimant_cannot_retry(self, client_for, admin, claimant, pending_claim):
        client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "REJECTED"})

        response = _start(client_for(claimant))

        assert response.status_code == 400
        assert response.json()["error"] == "Your previous claim for this supplier was rejected"

    def test_invalid_status(self, client_for, admin, pending_claim):
        response = client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "PENDING"})
        assert response.status_code == 400
        assert response.json()["error"] == "Status must be either CLAIMED or REJECTED"

    def test_already_processed(self, client_for, admin, pending_claim):
        admin_client = client_for(admin)
        admin_client.patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "CLAIMED"})

        response = admin_client.patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "REJECTED"})

        assert response.status_code == 400
        assert response.json()["error"] == "This claim has already been processed"

    def test_failed_supplier_update_leaves_claim_pending(self, client_for, db, admin, pending_claim):
        with patch("sqlalchemy.orm.Session.commit", side_effect=SQLAlchemyError("boom")):
            response = client_for(admin).patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "CLAIMED"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to update supplier"
        db.expire_all()
        assert db.query(SupplierClaim).one().status == SupplierClaimStatus.PENDING

    def test_list_with_statistics(self, client_for, admin, make_user, make_supplier, pending_claim):
        make_supplier("Cork Co")
        _start(client_for(make_user(role=UserRole.SUPPLIER)), slug="cork-co")
        admin_client = client_for(admin)
        admin_client.patch(f"/api/admin/claims/{pending_claim.id}", json={"status": "REJECTED"})

        data = admin_client.get("/api/admin/claims", params={"status": "PENDING"}).json()["data"]

        assert len(data["claims"]) == 1
        assert data["claims"][0]["supplier"]["slug"] == "cork-co"
        assert data["statistics"] == {"total": 2, "pending": 1, "claimed": 0, "rejected": 1}
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}

    def test_get_claim(self, client_for, admin, claimant, pending_claim):
        data = client_for(admin).get(f"/api/admin/claims/{pending_claim.id}").json()["data"]
        assert data["user"] == {"id": claimant.id, "email": claimant.email}

    def test_requires_admin(self, client_for, claimant, pending_claim):
        assert client_for(claimant).get("/api/admin/claims").status_code == 403


class TestAdminSuppliers:
    """/api/admin/suppliers"""

    def test_seed_unclaimed_supplier(self, client_for, admin):
        response = client_for(admin).post("/api/admin/suppliers", json={
            "companyName": "Label Press", "contactEmail": "hello@labelpress.example.com",
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["slug"] == "label-press"
        assert data["claimStatus"] == "UNCLAIMED"
        assert data["userId"] is None

    def test_filter_by_claim_status(self, client_for, admin, make_user, make_supplier):
        make_supplier("Cork Co")
        make_supplier("Glass House", user=make_user(role=UserRole.SUPPLIER))

        data = client_for(admin).get("/api/admin/suppliers", params={"claimStatus": "UNCLAIMED"}).json()["data"]

        assert [s["companyName"] for s in data["suppliers"]] == ["Cork Co"]
