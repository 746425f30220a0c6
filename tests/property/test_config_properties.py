"""Property tests for AppOptions."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError

from identity_admin_sdk.config import AppOptions

https_urls = st.builds(
    "https://{}.example.com/{}".format,
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=12),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz/", max_size=20),
)
timeouts = st.floats(min_value=0.01, max_value=300, allow_nan=False)
skews = st.integers(min_value=0, max_value=3600)


class TestAppOptionsProperties:
    """Property tests for option validation."""

    @given(timeout=timeouts, skew=skews)
    @settings(max_examples=100)
    def test_options_are_frozen(self, timeout: float, skew: int) -> None:
        """Property: options cannot be modified after construction."""
        options = AppOptions(timeout=timeout, clock_skew_seconds=skew)

        with pytest.raises(ValidationError):
            options.timeout = 1.0

    @given(url=https_urls)
    @settings(max_examples=100)
    def test_user_management_url_ends_with_slash(self, url: str) -> None:
        """Property: relative RPC names always resolve under the configured URL."""
        options = AppOptions(user_management_url=url)

        assert options.user_management_url.endswith("/")
        assert options.user_management_url.rstrip("/") == url.rstrip("/")

    @given(
        url=st.builds(
            "{}://{}.example.com".format,
            st.sampled_from(["http", "ftp", "ws"]),
            st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=12),
        )
    )
    @settings(max_examples=50)
    def test_non_https_urls_rejected(self, url: str) -> None:
        """Property: endpoints must use https."""
        with pytest.raises(ValidationError):
            AppOptions(public_keys_url=url)
        with pytest.raises(ValidationError):
            AppOptions(user_management_url=url)

    @given(skew=st.integers(min_value=3601, max_value=10**6) | st.integers(max_value=-1))
    @settings(max_examples=50)
    def test_clock_skew_bounds(self, skew: int) -> None:
        """Property: clock skew outside [0, 3600] seconds is rejected."""
        with pytest.raises(ValidationError):
            AppOptions(clock_skew_seconds=skew)

    @given(timeout=timeouts, skew=skews)
    @settings(max_examples=50)
    def test_with_overrides_preserves_other_fields(self, timeout: float, skew: int) -> None:
        """Property: overriding one field leaves the others unchanged."""
        base = AppOptions(clock_skew_seconds=skew)

        updated = base.with_overrides(timeout=timeout)

        assert updated.timeout == timeout
        assert updated.clock_skew_seconds == skew
        assert updated.user_management_url == base.user_management_url
        assert base.timeout == 30.0
