"""Language detection and per-language system instructions."""

import re
from typing import Dict, List, Optional

from app.settings.v1.general import SETTINGS


SUPPORTED_LANGUAGES: Dict[str, Dict[str, str]] = {
    "th": {"name": "Thai", "native_name": "ไทย", "flag": "🇹🇭"},
    "en": {"name": "English", "native_name": "English", "flag": "🇬🇧"},
    "ko": {"name": "Korean", "native_name": "한국어", "flag": "🇰🇷"},
    "zh": {"name": "Chinese", "native_name": "中文", "flag": "🇨🇳"},
    "ja": {"name": "Japanese", "native_name": "日本語", "flag": "🇯🇵"},
}

# Kana is checked before Han so Japanese text with kanji is not read as Chinese
_SCRIPT_PATTERNS = (
    ("th", re.compile("[฀-๿]")),
    ("ko", re.compile("[가-힯ᄀ-ᇿ]")),
    ("ja", re.compile("[぀-ヿ]")),
    ("zh", re.compile("[一-鿿]")),
)

_RULES_EN = """Response guidelines:
1. Give concise answers - get to the point quickly
2. Use bullet points or numbered lists (1, 2, 3) for clarity
3. Focus only on what was asked - no unnecessary details
4. Answer ONLY from the information in the documents
5. If no information is found, politely say so and suggest contacting staff
6. Do NOT provide medical diagnosis
7. Do NOT guarantee surgical results
8. Remember details the user shared earlier in the conversation"""

SYSTEM_INSTRUCTIONS: Dict[str, str] = {
    "th": """คุณคือแชตบอทผู้ช่วยของ "โรงพยาบาลวรรณสิริ"
โรงพยาบาลด้านศัลยกรรมและหัตถการทางการแพทย์

หลักการตอบคำถาม:
1. ตอบกระชับ ได้ใจความสำคัญ ไม่ยืดยาว
2. ใช้ bullet points หรือตัวเลข (1, 2, 3) เพื่อให้อ่านง่าย
3. เน้นข้อมูลที่ถามจริงๆ ไม่ต้องเล่าอะไรมาก
4. ตอบคำถามจากข้อมูลในเอกสารเท่านั้น
5. หากไม่มีข้อมูล ให้บอกว่าไม่พบและแนะนำติดต่อเจ้าหน้าที่
6. ห้ามให้คำวินิจฉัยทางการแพทย์
7. ห้ามรับประกันผลลัพธ์
8. ตอบเป็นภาษาไทยเท่านั้น
9. จำข้อมูลจากการสนทนาก่อนหน้าได้ - ถ้าผู้ใช้บอกชื่อ ประเทศ หรือข้อมูลส่วนตัวไปแล้ว ให้จำและอ้างอิงได้""",

    "en": f"""You are a chatbot assistant for "Wansiri Hospital"
A hospital specializing in surgery and medical procedures.

{_RULES_EN}
9. Respond in English only""",

    "ko": """당신은 "완시리 병원"의 챗봇 도우미입니다.
수술 및 의료 시술을 전문으로 하는 병원입니다.

답변 지침:
1. 간결하게 답변 - 핵심을 빠르게 전달
2. 글머리 기호나 번호 목록(1, 2, 3)을 사용하여 명확하게
3. 질문한 내용에만 집중 - 불필요한 세부사항 제외
4. 문서의 정보로만 답변
5. 정보가 없으면 정중히 말씀드리고 병원 직원 연결 안내
6. 의학적 진단 제공 금지
7. 수술 결과 보장 금지
8. 한국어로만 답변""",

    "zh": """您是"Wansiri医院"的聊天机器人助手。
一家专门从事手术和医疗程序的医院。

回答指南：
1. 简洁回答 - 快速切入重点
2. 使用项目符号或编号列表（1、2、3）以便清晰
3. 只关注被问到的内容 - 不包括不必要的细节
4. 仅根据文档中的信息回答
5. 如果找不到信息，礼貌地说明并建议联系工作人员
6. 不要提供医疗诊断
7. 不要保证手术结果
8. 只用中文回答""",

    "ja": f"""You are a chatbot assistant for "Wansiri Hospital"
A hospital specializing in surgery and medical procedures.

{_RULES_EN}
9. Respond in Japanese only""",
}

GREETINGS: Dict[str, str] = {
    "th": "สวัสดีค่ะ ยินดีต้อนรับสู่โรงพยาบาลวรรณสิริค่ะ",
    "en": "Hello! Welcome to Wansiri Hospital. How can I help you today?",
    "ko": "안녕하세요! 완시리 병원에 오신 것을 환영합니다. 무엇을 도와드릴까요?",
    "zh": "您好！欢迎来到Wansiri医院。我能为您做些什么？",
    "ja": "こんにちは！ワンシリ病院へようこそ。ご用件をお聞かせください。",
}


def detect_language(text: str) -> str:
    """
    Detect the language of ``text`` from the scripts it uses.

    Text without Thai, Hangul, Kana or Han characters is treated as English.
    """
    for code, pattern in _SCRIPT_PATTERNS:
        if pattern.search(text or ""):
            return code
    return "en"


def is_supported(language: Optional[str]) -> bool:
    return bool(language) and language in SUPPORTED_LANGUAGES


def resolve_language(message: str, selected_language: Optional[str] = None, mode: str = "auto") -> Dict[str, str]:
    """
    Work out the language of the question and the language to answer in.

    Args:
        message: The user's message.
        selected_language: Language chosen in the client.
        mode: ``"manual"`` answers in ``selected_language``; ``"auto"`` in the
            detected language.

    Returns:
        Dict[str, str]: ``detected`` and ``target`` language codes.
    """
    detected = detect_language(message)
    target = detected

    if mode == "manual" and is_supported(selected_language):
        target = selected_language

    return {"detected": detected, "target": target}


def system_instruction(language: str) -> str:
    """System instruction for answering in ``language``."""
    return SYSTEM_INSTRUCTIONS.get(language) or SYSTEM_INSTRUCTIONS[SETTINGS.DEFAULT_LANGUAGE]


def greeting(language: str) -> str:
    return GREETINGS.get(language, GREETINGS["en"])


def list_languages() -> List[Dict[str, str]]:
    """Supported languages in display order."""
    return [
        {"code": code, **details, "greeting": greeting(code)}
        for code, details in SUPPORTED_LANGUAGES.items()
    ]
