"""
Test Case Suite: Agent Registry
Test ID Range: TC-001 to TC-020, TC-071 to TC-073

Validates agent registration, uniqueness of phone/email/license number,
lookups, profile updates and status transitions.
"""

import re
import pytest
from sqlalchemy import select, func
from agent_service.models.agent import Agent
from agent_service.services import AgentRegistry
from agent_service.utils.exceptions import DuplicateError, NotFoundError, ValidationError
from tests.helpers import TEST_PHONE

LICENSE_PATTERN = re.compile(r"^\d{6}$")


async def _register(registry, phone="698765432", email="other@example.com", country_code="+33"):
    return await registry.register(
        phone_number=phone,
        country_code=country_code,
        first_name="Louis",
        last_name="Martin",
        email=email,
    )


class TestRegistration:
    """
    Test Case TC-001: Register Agent with Valid Data
    Expected Result: Agent row with active status and a 6-digit license number
    """
    @pytest.mark.asyncio
    async def test_tc001_register_valid_agent(self, agent):
        """TC-001: Register agent with valid data"""
        assert agent["phone_number"] == TEST_PHONE
        assert agent["country_code"] == "+212"
        assert agent["status"] == "active"
        assert LICENSE_PATTERN.match(agent["license_number"])
        assert agent["id"]
        assert agent["created_at"]

    @pytest.mark.asyncio
    async def test_tc002_register_normalizes_phone_and_email(self, registry):
        """TC-002: Spaces/dashes are stripped and email lower-cased"""
        agent = await _register(registry, phone="6 98-76 54-32", email="Louis.Martin@Example.COM")

        assert agent["phone_number"] == "698765432"
        assert agent["email"] == "louis.martin@example.com"

    @pytest.mark.asyncio
    async def test_tc003_duplicate_phone_rejected(self, registry, agent):
        """TC-003: Registering the same phone twice fails on the phone field"""
        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, phone=TEST_PHONE, email="someone.else@example.com")

        assert exc_info.value.field == "phone_number"
        assert exc_info.value.code == "duplicate"

    @pytest.mark.asyncio
    async def test_tc004_duplicate_email_rejected(self, registry, agent):
        """TC-004: Email collision is detected case-insensitively"""
        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, email="AMINA.BENALI@example.com")

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_tc005_phone_checked_before_email(self, registry, agent):
        """TC-005: When both collide the phone field is reported"""
        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, phone=TEST_PHONE, email=agent["email"])

        assert exc_info.value.field == "phone_number"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone", ["12345678", "1234567890123", "61234a678", "", "６１２３４５６７８", "61234567²"])
    async def test_tc006_invalid_phone_rejected(self, registry, phone):
        """TC-006: Phone numbers must be 9-12 digits"""
        with pytest.raises(ValidationError):
            await _register(registry, phone=phone)

    @pytest.mark.asyncio
    async def test_tc007_unsupported_country_code(self, registry):
        """TC-007: Only configured country codes are accepted"""
        with pytest.raises(ValidationError) as exc_info:
            await _register(registry, country_code="+1")

        assert exc_info.value.code == "validation_error"

    @pytest.mark.asyncio
    async def test_tc008_country_codes_are_configurable(self, session_factory):
        """TC-008: Allow-list comes from the constructor"""
        registry = AgentRegistry(session_factory, supported_country_codes=["+44"])

        agent = await _register(registry, country_code="+44")
        assert agent["country_code"] == "+44"

        with pytest.raises(ValidationError):
            await _register(registry, phone="611111111", email="x@example.com", country_code="+212")


class TestLicenseNumbers:
    """
    Test Case TC-009: License numbers stay unique
    Expected Result: Collisions are retried a bounded number of times
    """
    @pytest.mark.asyncio
    async def test_tc009_license_numbers_unique(self, registry):
        """TC-009: Many registrations never share a license number"""
        licenses = set()
        for i in range(20):
            agent = await _register(registry, phone=f"6000000{i:02d}", email=f"agent{i}@example.com")
            assert LICENSE_PATTERN.match(agent["license_number"])
            licenses.add(agent["license_number"])

        assert len(licenses) == 20

    @pytest.mark.asyncio
    async def test_tc010_license_collision_retried(self, registry):
        """TC-010: A colliding license number is redrawn"""
        draws = iter(["123456", "123456", "654321"])
        registry.generate_license_number = lambda: next(draws)

        first = await _register(registry, phone="600000001", email="first@example.com")
        second = await _register(registry, phone="600000002", email="second@example.com")

        assert first["license_number"] == "123456"
        assert second["license_number"] == "654321"

    @pytest.mark.asyncio
    async def test_tc011_license_retries_are_bounded(self, registry, session_factory):
        """TC-011: Registration gives up after the configured number of collisions"""
        registry.generate_license_number = lambda: "111111"
        await _register(registry, phone="600000001", email="first@example.com")

        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, phone="600000002", email="second@example.com")

        assert exc_info.value.field == "license_number"

        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(Agent))).scalar_one()
        assert count == 1


class TestConcurrentRegistration:
    """
    Test Case TC-071: Registration loses the race for phone or email
    Expected Result: The UNIQUE constraint wins and the colliding field is reported, no retry
    """
    @staticmethod
    def _skip_first_check(registry):
        check = registry._raise_if_taken
        calls = []

        async def raise_if_taken(session, phone_number, email):
            calls.append(phone_number)
            if len(calls) == 1:
                return
            await check(session, phone_number, email)

        registry._raise_if_taken = raise_if_taken
        return calls

    @pytest.mark.asyncio
    async def test_tc071_phone_claimed_after_precheck(self, registry, agent, session_factory):
        """TC-071: Phone taken between the pre-check and the insert"""
        calls = self._skip_first_check(registry)

        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, phone=TEST_PHONE, email="late@example.com")

        assert exc_info.value.field == "phone_number"
        assert len(calls) == 2

        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(Agent))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_tc072_email_claimed_after_precheck(self, registry, agent):
        """TC-072: Email taken between the pre-check and the insert"""
        self._skip_first_check(registry)

        with pytest.raises(DuplicateError) as exc_info:
            await _register(registry, phone="698765432", email=agent["email"])

        assert exc_info.value.field == "email"


class TestLookups:
    """
    Test Case TC-012: Equality lookups
    Expected Result: None on miss, never an error
    """
    @pytest.mark.asyncio
    async def test_tc012_lookups_hit(self, registry, agent):
        """TC-012: Lookup by id, phone and email"""
        assert (await registry.get_by_id(agent["id"]))["id"] == agent["id"]
        assert (await registry.get_by_phone_number("612-345-678"))["id"] == agent["id"]
        assert (await registry.get_by_email("Amina.Benali@example.com"))["id"] == agent["id"]

    @pytest.mark.asyncio
    async def test_tc013_lookups_miss(self, registry):
        """TC-013: Lookups return None for unknown agents"""
        assert await registry.get_by_id("missing") is None
        assert await registry.get_by_phone_number("699999999") is None
        assert await registry.get_by_email("nobody@example.com") is None


class TestProfileUpdates:
    """
    Test Case TC-014: Update Profile
    Expected Result: Only first name, last name and email change
    """
    @pytest.mark.asyncio
    async def test_tc014_update_names(self, registry, agent):
        """TC-014: Names are updated and phone is left untouched"""
        updated = await registry.update_profile(agent["id"], {
            "first_name": "Nadia",
            "last_name": "Alaoui",
            "phone_number": "699999999",
        })

        assert updated["first_name"] == "Nadia"
        assert updated["last_name"] == "Alaoui"
        assert updated["phone_number"] == TEST_PHONE

    @pytest.mark.asyncio
    async def test_tc015_update_without_fields(self, registry, agent):
        """TC-015: No mutable fields is a validation error"""
        with pytest.raises(ValidationError):
            await registry.update_profile(agent["id"], {"phone_number": "699999999"})

    @pytest.mark.asyncio
    async def test_tc016_update_email_taken(self, registry, agent):
        """TC-016: Email already used by another agent"""
        other = await _register(registry)

        with pytest.raises(DuplicateError) as exc_info:
            await registry.update_profile(other["id"], {"email": agent["email"]})

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_tc017_update_own_email(self, registry, agent):
        """TC-017: Re-submitting one's own email is allowed"""
        updated = await registry.update_profile(agent["id"], {"email": agent["email"].upper()})
        assert updated["email"] == agent["email"]

    @pytest.mark.asyncio
    async def test_tc018_update_missing_agent(self, registry):
        """TC-018: Unknown agent id"""
        with pytest.raises(NotFoundError):
            await registry.update_profile("missing", {"first_name": "Ghost"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("updates", [{"first_name": ""}, {"last_name": "", "first_name": "Nadia"}])
    async def test_tc073_update_empty_name_rejected(self, registry, agent, updates):
        """TC-073: Names cannot be blanked out"""
        with pytest.raises(ValidationError):
            await registry.update_profile(agent["id"], updates)

        unchanged = await registry.get_by_id(agent["id"])
        assert unchanged["first_name"] == agent["first_name"]
        assert unchanged["last_name"] == agent["last_name"]


class TestStatus:
    """
    Test Case TC-019: Status transitions
    Expected Result: Only active/inactive/suspended are accepted
    """
    @pytest.mark.asyncio
    async def test_tc019_update_status(self, registry, agent):
        """TC-019: Suspend then reactivate"""
        suspended = await registry.update_status(agent["id"], "suspended")
        assert suspended["status"] == "suspended"

        active = await registry.update_status(agent["id"], "active")
        assert active["status"] == "active"

    @pytest.mark.asyncio
    async def test_tc020_update_status_invalid(self, registry, agent):
        """TC-020: Invalid status and unknown agent"""
        with pytest.raises(ValidationError):
            await registry.update_status(agent["id"], "deleted")

        with pytest.raises(NotFoundError):
            await registry.update_status("missing", "inactive")
