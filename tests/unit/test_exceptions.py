from idscan.extraction.exceptions import (
    ExtractionError,
    ImageValidationError,
    NormalizationWarning,
    ParseError,
    ProviderError,
    cap_text,
)


class TestTaxonomy:
    def test_failure_kinds_are_distinct(self) -> None:
        kinds = {ImageValidationError.kind, ProviderError.kind, ParseError.kind}
        assert kinds == {"image_unreadable", "provider_failed", "output_uninterpretable"}

    def test_all_failures_share_a_base(self) -> None:
        for cls in (ImageValidationError, ProviderError, ParseError):
            assert issubclass(cls, ExtractionError)

    def test_warning_is_not_an_error(self) -> None:
        assert issubclass(NormalizationWarning, UserWarning)
        assert not issubclass(NormalizationWarning, ExtractionError)

    def test_user_messages(self) -> None:
        assert ImageValidationError("x").user_message == "Could not read the image."
        assert "provider" in ProviderError("x").user_message


class TestDiagnostics:
    def test_provider_diagnostic_is_capped(self) -> None:
        exc = ProviderError("boom", provider="gemini", diagnostic="d" * 3000)
        assert exc.provider == "gemini"
        assert exc.diagnostic.endswith("...[truncated]")
        assert len(exc.diagnostic) == 2000 + len("...[truncated]")

    def test_cap_text_keeps_short_text(self) -> None:
        assert cap_text("abc", limit=10) == "abc"
