"""Tests for the RoleARN value type."""

from __future__ import annotations

import pytest

from backplane_broker.aws.arn import RoleARN
from backplane_broker.errors import MalformedARNError


class TestRoleARNParse:
    def test_parses_role_arn(self) -> None:
        arn = RoleARN.parse("arn:aws:iam::123456789:role/RH-Technical-Support-Access")
        assert arn.partition == "aws"
        assert arn.service == "iam"
        assert arn.region == ""
        assert arn.account_id == "123456789"
        assert arn.role_name == "RH-Technical-Support-Access"

    def test_role_name_strips_path(self) -> None:
        arn = RoleARN.parse("arn:aws-us-gov:iam::123456789:role/support/jump/Jump-Role")
        assert arn.role_name == "Jump-Role"
        assert arn.partition == "aws-us-gov"

    def test_str_gives_back_the_arn(self) -> None:
        raw = "arn:aws:iam::123456789:role/ManagedOpenShift-Support-Role"
        assert str(RoleARN.parse(raw)) == raw

    @pytest.mark.parametrize(
        "raw",
        [
            "not-an-arn",
            "",
            "arn:aws:iam::123456789",
            "arn::iam::123456789:role/Foo",
            "arn:aws:s3:::my-bucket",
            "arn:aws:iam::123456789:user/bob",
            "arn:aws:iam::123456789:role/",
        ],
    )
    def test_rejects_malformed(self, raw: str) -> None:
        with pytest.raises(MalformedARNError):
            RoleARN.parse(raw)

    def test_immutable(self) -> None:
        arn = RoleARN.parse("arn:aws:iam::123456789:role/Foo")
        with pytest.raises(AttributeError):
            arn.account_id = "999"  # type: ignore[misc]
