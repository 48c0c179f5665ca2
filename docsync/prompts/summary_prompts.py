# Prompts for OCR summarization and applicable-date extraction.
# The model must answer with exactly one JSON object holding the keys
# "summary", "applicable_date" and "confidence".

SUMMARY_SYSTEM_PROMPT = (
    "あなたは介護・障害福祉サービス関連の文書を読み取り、要約と重要日付の抽出を行う専門AIです。"
)

SUMMARY_USER_PROMPT_TEMPLATE = """以下はFAXやDigiサイン等からOCRしたテキストです。
この文書が契約書・計画書・モニタリング等であると想定して、
次の情報をJSON形式で返してください。

【求めるJSON形式】
{{
  "summary": string,              // 文書全体の要約（日本語、最大400文字程度）
  "applicable_date": string|null, // 契約日・開始日・基準日など、この文書の起点となる日付（YYYY-MM-DD）。不明なら null。
  "confidence": number            // applicable_date が正しいという自信度（0〜100）
}}

【applicable_date の決め方】
- 契約書なら「契約日」「契約開始日」など、最初の開始日を優先してください。
- 計画書やプランなら「計画期間の開始日」を優先してください。
- モニタリング等で基準となる日付が明示されている場合はその日付。
- 複数候補がある場合は、訪問介護・居宅介護にとって一番重要と思われる日付を1つ選んでください。
- 日付が全く読み取れない場合は null を返してください。

【重要】
- 出力は厳密な JSON だけにしてください（説明文やコメントは付けない）。
- キーは summary, applicable_date, confidence の3つだけにしてください。
- 日付は必ず YYYY-MM-DD 形式で返してください。

---- OCRテキストここから ----
{ocr_text}
---- OCRテキストここまで ----"""


def build_summary_prompt(ocr_text: str) -> str:
    """Render the user prompt for one document's OCR text."""
    return SUMMARY_USER_PROMPT_TEMPLATE.format(ocr_text=ocr_text)
