"""
Tests de detección de idioma y validadores de entrada.
"""

import pytest

from app.core.v1.exceptions import (
    FileValidationException,
    InvalidSessionIdException,
    ValidationException
)
from app.core.v1.language_manager import (
    detect_language,
    list_languages,
    resolve_language,
    system_instruction
)
from app.core.v1.validators import FileValidator, SessionValidator


class TestLanguageDetection:
    """Tests de detección de idioma por escritura."""

    @pytest.mark.parametrize("text,expected", [
        ("ราคาเท่าไหร่", "th"),
        ("회복 기간은 얼마나 걸리나요?", "ko"),
        ("手术需要多长时间？", "zh"),
        ("手術はどのくらいかかりますか？", "ja"),
        ("What is SRS?", "en"),
    ])
    def test_detect_language(self, text, expected):
        """Cada escritura se asocia a su idioma."""
        assert detect_language(text) == expected

    @pytest.mark.edge_case
    def test_empty_text_is_english(self):
        """Un texto vacío se trata como inglés."""
        assert detect_language("") == "en"

    def test_auto_mode_answers_in_detected_language(self):
        """En modo automático se ignora el idioma seleccionado."""
        assert resolve_language("ราคาเท่าไหร่", "en", "auto") == {"detected": "th", "target": "th"}

    @pytest.mark.edge_case
    def test_manual_mode_with_unsupported_language(self):
        """Un idioma no soportado en modo manual cae al detectado."""
        assert resolve_language("What is SRS?", "fr", "manual") == {"detected": "en", "target": "en"}

    def test_unknown_language_uses_default_instruction(self):
        """Un idioma desconocido usa la instrucción del idioma por defecto."""
        assert system_instruction("fr") == system_instruction("th")

    def test_list_languages(self):
        """Cada idioma incluye nombre, bandera y saludo."""
        languages = list_languages()

        assert len(languages) == 5
        assert all({"code", "name", "native_name", "flag", "greeting"} <= set(lang) for lang in languages)


class TestSessionValidator:
    """Tests del validador de ids de sesión."""

    def test_valid_ids(self):
        """Los ids generados y los de clientes típicos son válidos."""
        assert SessionValidator.validate_session_id("session_1718000000000_ab12cd34ef") == "session_1718000000000_ab12cd34ef"
        assert SessionValidator.validate_session_id("  web-client:42  ") == "web-client:42"

    @pytest.mark.edge_case
    @pytest.mark.parametrize("value", ["", "   ", "bad id", "x" * 129, None, 42])
    def test_invalid_ids(self, value):
        """Ids vacíos, con espacios, demasiado largos o no textuales se rechazan."""
        with pytest.raises(InvalidSessionIdException):
            SessionValidator.validate_session_id(value)


class TestFileValidator:
    """Tests del validador de archivos subidos."""

    def test_allowed_extensions(self):
        """PDF, TXT y MD son aceptados."""
        for name in ("guide.pdf", "faq.TXT", "notes.md"):
            FileValidator.validate_upload(name, 100)

    @pytest.mark.edge_case
    def test_too_large(self):
        """Archivos de más de 10MB se rechazan."""
        with pytest.raises(FileValidationException):
            FileValidator.validate_upload("guide.pdf", 10 * 1024 * 1024 + 1)

    @pytest.mark.edge_case
    def test_invalid_file_id(self):
        """Los ids de archivo con separadores de ruta se rechazan."""
        with pytest.raises(ValidationException):
            FileValidator.validate_file_id("../etc/passwd")
