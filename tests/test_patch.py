"""Tests for applying overlays to the live configuration."""

from __future__ import annotations

import copy
import threading

import pytest

from overlay_gateway.common.config import LiveConfiguration, PatchPolicy
from overlay_gateway.common.exceptions import (
    DecryptionError,
    UnsupportedBackendError,
    ValidationError,
)
from overlay_gateway.services.config.patch import PatchStatus, patch_configuration
from overlay_gateway.services.config.validator import load_overlay
from tests.resources import (
    ACCESS_KEY,
    ARN,
    CANONICAL_ID,
    DECRYPTED_SECRET_KEY,
    EMAIL,
    SHORTID,
    USER_NAME,
)


def _check_no_error(result) -> None:
    assert result.ok, f"Expected success but got error {result.error}"


def test_full_overlay_modifies_config(full_overlay: dict, live_config: LiveConfiguration, private_key: str) -> None:
    result = patch_configuration(full_overlay, live_config, private_key)

    _check_no_error(result)
    assert result.status == PatchStatus.APPLIED
    snapshot = live_config.snapshot()
    assert snapshot["overlayVersion"] == 1
    assert snapshot["browserAccessEnabled"] is True
    assert snapshot["authData"] == {
        "accounts": [
            {
                "name": USER_NAME,
                "email": EMAIL,
                "arn": ARN,
                "canonicalID": CANONICAL_ID,
                "shortid": SHORTID,
                "keys": [{"access": ACCESS_KEY, "secret": DECRYPTED_SECRET_KEY}],
            }
        ]
    }
    assert snapshot["locationConstraints"]["legacy"] == {"type": "mem", "legacyAwsBehavior": False}
    assert snapshot["locationConstraints"]["us-east-1"] == {"type": "file", "legacyAwsBehavior": True}
    assert snapshot["locationConstraints"]["azurebackendtest"]["type"] == "azure"
    assert snapshot["locationConstraints"]["awsbackendtest"]["details"]["credentials"] == {
        "accessKey": "awsaccesskey",
        "secretKey": DECRYPTED_SECRET_KEY,
    }
    assert snapshot["locationConstraints"]["gcpbackendtest"]["details"]["mpuBucketName"] is None
    assert snapshot["restEndpoints"]["1.1.1.1"] == "us-east-1"
    assert result.sections == ["users", "locations", "endpoints", "browserAccess"]


def test_mem_location_scenario(live_config: LiveConfiguration) -> None:
    overlay = {
        "version": 1,
        "locations": {"legacy": {"name": "legacy", "locationType": "location-mem-v1"}},
    }
    _check_no_error(patch_configuration(overlay, live_config))

    assert live_config.location_constraints["legacy"].to_dict() == {"type": "mem", "legacyAwsBehavior": False}
    assert live_config.overlay_version == 1


def test_endpoint_scenario(live_config: LiveConfiguration) -> None:
    overlay = {"version": 1, "endpoints": [{"hostname": "1.1.1.1", "locationName": "us-east-1"}]}
    _check_no_error(patch_configuration(overlay, live_config))

    assert live_config.rest_endpoints["1.1.1.1"] == "us-east-1"


def test_applies_second_overlay_with_greater_version(live_config: LiveConfiguration) -> None:
    _check_no_error(patch_configuration({"version": 1}, live_config))
    result = patch_configuration({"version": 2, "browserAccess": {"enabled": True}}, live_config)

    _check_no_error(result)
    assert live_config.overlay_version == 2
    assert live_config.browser_access_enabled is True


def test_ignores_second_overlay_with_equal_version(live_config: LiveConfiguration) -> None:
    _check_no_error(patch_configuration({"version": 1}, live_config))
    result = patch_configuration({"version": 1, "browserAccess": {"enabled": True}}, live_config)

    _check_no_error(result)
    assert result.status == PatchStatus.STALE_IGNORED
    assert live_config.overlay_version == 1
    assert live_config.browser_access_enabled is None


def test_exact_replay_is_a_no_op(full_overlay: dict, live_config: LiveConfiguration, private_key: str) -> None:
    _check_no_error(patch_configuration(full_overlay, live_config, private_key))
    before = live_config.snapshot()
    auth_data = live_config.auth_data

    result = patch_configuration(full_overlay, live_config, private_key)

    assert result.status == PatchStatus.STALE_IGNORED
    assert live_config.snapshot() == before
    assert live_config.auth_data is auth_data


def test_older_overlay_is_ignored(live_config: LiveConfiguration) -> None:
    _check_no_error(patch_configuration({"version": 5, "browserAccess": {"enabled": True}}, live_config))
    result = patch_configuration({"version": 2, "browserAccess": {"enabled": False}}, live_config)

    assert result.status == PatchStatus.STALE_IGNORED
    assert result.previous_version == 5
    assert live_config.browser_access_enabled is True


def test_v2_merges_onto_v1_sections(full_overlay: dict, live_config: LiveConfiguration, private_key: str) -> None:
    _check_no_error(patch_configuration(full_overlay, live_config, private_key))
    v1 = live_config.snapshot()

    v2 = {"version": 2, "endpoints": [{"hostname": "2.2.2.2", "locationName": "legacy"}]}
    _check_no_error(patch_configuration(v2, live_config, private_key))
    final = live_config.snapshot()

    assert final["overlayVersion"] == 2
    assert final["restEndpoints"] == {"2.2.2.2": "legacy"}
    for key in ("authData", "locationConstraints", "browserAccessEnabled"):
        assert final[key] == v1[key]


def test_unversioned_overlay_is_always_admitted(live_config: LiveConfiguration) -> None:
    _check_no_error(patch_configuration({"version": 4}, live_config))
    result = patch_configuration({"browserAccess": {"enabled": True}}, live_config)

    assert result.status == PatchStatus.APPLIED
    assert live_config.browser_access_enabled is True
    assert live_config.overlay_version == 4


def test_accepts_loaded_descriptor(live_config: LiveConfiguration) -> None:
    descriptor = load_overlay({"version": 7, "browserAccess": {"enabled": False}})
    _check_no_error(patch_configuration(descriptor, live_config))

    assert live_config.overlay_version == 7
    assert live_config.browser_access_enabled is False


def _assert_failed_without_mutation(result, live_config: LiveConfiguration, before: dict) -> None:
    assert result.status == PatchStatus.FAILED
    assert not result.ok
    assert live_config.snapshot() == before


def test_unknown_location_type_leaves_config_unchanged(
    full_overlay: dict, live_config: LiveConfiguration, private_key: str
) -> None:
    _check_no_error(patch_configuration({"version": 1, "browserAccess": {"enabled": False}}, live_config))
    before = live_config.snapshot()

    overlay = copy.deepcopy(full_overlay)
    overlay["version"] = 2
    overlay["locations"]["mystery"] = {"name": "mystery", "locationType": "location-tape-v1"}
    result = patch_configuration(overlay, live_config, private_key)

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, UnsupportedBackendError)
    assert result.section == "locations"


def test_missing_location_detail_aborts_patch(
    full_overlay: dict, live_config: LiveConfiguration, private_key: str
) -> None:
    before = live_config.snapshot()
    overlay = copy.deepcopy(full_overlay)
    del overlay["locations"]["awsbackendtest"]["details"]["bucketName"]

    result = patch_configuration(overlay, live_config, private_key)

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, ValidationError)
    assert result.error.field == "bucketName"


def _set_user_secret(overlay: dict) -> None:
    overlay["users"][0]["secretKey"] = 7


def _set_location_secret(overlay: dict) -> None:
    overlay["locations"]["awsbackendtest"]["details"]["secretKey"] = 12345


def _set_endpoint_hostname(overlay: dict) -> None:
    overlay["endpoints"][0]["hostname"] = ["1.1.1.1"]


def _duplicate_location_name(overlay: dict) -> None:
    overlay["locations"]["legacy"]["name"] = "us-east-1"


@pytest.mark.parametrize(
    ("mutate", "section", "field"),
    [
        (_set_user_secret, "users", "secretKey"),
        (_set_location_secret, "locations", "secretKey"),
        (_set_endpoint_hostname, "endpoints", "hostname"),
        (_duplicate_location_name, "locations", "name"),
    ],
)
def test_malformed_field_is_reported_not_raised(
    full_overlay: dict, live_config: LiveConfiguration, private_key: str, mutate, section: str, field: str
) -> None:
    before = live_config.snapshot()
    overlay = copy.deepcopy(full_overlay)
    mutate(overlay)

    result = patch_configuration(overlay, live_config, private_key)

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, ValidationError)
    assert result.section == section
    assert result.error.field == field


def test_wrong_private_key_aborts_patch(
    full_overlay: dict, live_config: LiveConfiguration, other_private_key: str
) -> None:
    before = live_config.snapshot()
    result = patch_configuration(full_overlay, live_config, other_private_key)

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, DecryptionError)
    assert result.section == "users"
    assert DECRYPTED_SECRET_KEY not in str(result.error)


def test_secrets_without_private_key_abort_patch(full_overlay: dict, live_config: LiveConfiguration) -> None:
    before = live_config.snapshot()
    result = patch_configuration(full_overlay, live_config)

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, DecryptionError)


def test_malformed_private_key_reports_secret_section(full_overlay: dict, live_config: LiveConfiguration) -> None:
    result = patch_configuration(full_overlay, live_config, "not a pem key")

    assert result.status == PatchStatus.FAILED
    assert result.section == "users"


def test_malformed_overlay_is_reported(live_config: LiveConfiguration) -> None:
    before = live_config.snapshot()
    result = patch_configuration({"version": 3, "users": "everyone"}, live_config)

    _assert_failed_without_mutation(result, live_config, before)
    assert result.section == "users"


def test_failed_patch_does_not_bump_version(live_config: LiveConfiguration) -> None:
    result = patch_configuration(
        {"version": 9, "endpoints": [{"hostname": "1.1.1.1"}]},
        live_config,
    )

    assert result.status == PatchStatus.FAILED
    assert live_config.overlay_version == 0
    # A corrected overlay with the same version is still admitted
    fixed = {"version": 9, "endpoints": [{"hostname": "1.1.1.1", "locationName": "legacy"}]}
    _check_no_error(patch_configuration(fixed, live_config))
    assert live_config.overlay_version == 9


@pytest.fixture
def populated_config(full_overlay: dict, private_key: str) -> LiveConfiguration:
    live_config = LiveConfiguration()
    _check_no_error(patch_configuration(full_overlay, live_config, private_key))
    return live_config


EMPTY_SECTIONS = {
    "version": 2,
    "users": [],
    "locations": {},
    "endpoints": [],
    "browserAccess": {},
}


def test_empty_sections_clear_prior_state(populated_config: LiveConfiguration) -> None:
    result = patch_configuration(EMPTY_SECTIONS, populated_config)

    _check_no_error(result)
    assert populated_config.auth_data.accounts == []
    assert populated_config.location_constraints == {}
    assert populated_config.rest_endpoints == {}
    assert populated_config.browser_access_enabled is False
    assert populated_config.overlay_version == 2


def test_empty_sections_can_be_ignored(populated_config: LiveConfiguration) -> None:
    before = populated_config.snapshot()
    policy = PatchPolicy(empty_sections_clear=False)

    result = patch_configuration(EMPTY_SECTIONS, populated_config, policy=policy)

    _check_no_error(result)
    assert result.sections == []
    after = populated_config.snapshot()
    assert after["overlayVersion"] == 2
    for key in ("authData", "locationConstraints", "restEndpoints", "browserAccessEnabled"):
        assert after[key] == before[key]


def test_endpoint_location_validation(live_config: LiveConfiguration) -> None:
    policy = PatchPolicy(validate_endpoint_locations=True)
    overlay = {
        "version": 1,
        "locations": {"legacy": {"locationType": "location-mem-v1"}},
        "endpoints": [{"hostname": "1.1.1.1", "locationName": "us-east-1"}],
    }

    result = patch_configuration(overlay, live_config, policy=policy)

    assert result.status == PatchStatus.FAILED
    assert result.section == "endpoints"
    assert live_config.location_constraints == {}


def test_endpoint_validation_uses_existing_locations(live_config: LiveConfiguration) -> None:
    policy = PatchPolicy(validate_endpoint_locations=True)
    _check_no_error(patch_configuration(
        {"version": 1, "locations": {"legacy": {"locationType": "location-mem-v1"}}},
        live_config,
        policy=policy,
    ))

    result = patch_configuration(
        {"version": 2, "endpoints": [{"hostname": "1.1.1.1", "locationName": "legacy"}]},
        live_config,
        policy=policy,
    )

    _check_no_error(result)
    assert live_config.rest_endpoints == {"1.1.1.1": "legacy"}


def test_parallel_translation_matches_sequential(full_overlay: dict, private_key: str) -> None:
    sequential = LiveConfiguration()
    parallel = LiveConfiguration()

    _check_no_error(patch_configuration(full_overlay, sequential, private_key))
    _check_no_error(patch_configuration(
        full_overlay, parallel, private_key, PatchPolicy(parallel_translation=True, max_workers=4)
    ))

    assert parallel.snapshot() == sequential.snapshot()


def test_parallel_translation_fails_fast_without_mutation(full_overlay: dict, private_key: str) -> None:
    live_config = LiveConfiguration()
    before = live_config.snapshot()
    overlay = copy.deepcopy(full_overlay)
    overlay["locations"]["legacy"]["locationType"] = "location-unknown-v1"

    result = patch_configuration(overlay, live_config, private_key, PatchPolicy(parallel_translation=True))

    _assert_failed_without_mutation(result, live_config, before)
    assert isinstance(result.error, UnsupportedBackendError)


def test_concurrent_patches_keep_version_monotonic(live_config: LiveConfiguration) -> None:
    versions = list(range(1, 41))
    barrier = threading.Barrier(len(versions))

    def worker(version: int) -> None:
        barrier.wait()
        patch_configuration(
            {"version": version, "endpoints": [{"hostname": "h", "locationName": f"loc-{version}"}]},
            live_config,
        )

    threads = [threading.Thread(target=worker, args=(v,)) for v in versions]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert live_config.overlay_version == 40
    assert live_config.rest_endpoints == {"h": "loc-40"}
