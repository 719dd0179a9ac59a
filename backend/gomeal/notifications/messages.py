"""Builders that turn notification parameters into LINE message objects."""
import json
from typing import Any, Optional

TimeSlotName = str  # "DAY" | "NIGHT"


def _login_url(frontend_url: str) -> str:
    return frontend_url.rstrip("/") + "/login"


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def buttons_template(text: str, actions: list[dict[str, Any]], title: Optional[str] = None) -> dict[str, Any]:
    template: dict[str, Any] = {"type": "buttons", "text": text, "actions": actions}
    if title:
        template["title"] = title
    # LINE caps altText at 400 chars
    return {"type": "template", "altText": text[:400], "template": template}


def postback_action(label: str, data: str) -> dict[str, Any]:
    return {"type": "postback", "label": label, "data": data}


def build_availability_template(time_slot: TimeSlotName) -> dict[str, Any]:
    """Daily prompt with one postback button per availability status."""
    is_lunch = time_slot == "DAY"
    title = "今日の昼ごはんの予定" if is_lunch else "今日の夜ごはんの予定"
    text = "今日の昼ごはんに行けるか教えてください" if is_lunch else "今日の夜ごはんに行けるか教えてください"
    prefix = f"availability:{time_slot}"
    return buttons_template(
        text,
        [
            postback_action("✅ 行ける", f"{prefix}:AVAILABLE"),
            postback_action("💻 Meetなら", f"{prefix}:MEET_ONLY"),
            postback_action("❌ 行けない", f"{prefix}:UNAVAILABLE"),
        ],
        title=title,
    )


def build_availability_reply(time_slot: TimeSlotName, status: str) -> dict[str, Any]:
    slot_label = "昼" if time_slot == "DAY" else "夜"
    status_label = {
        "AVAILABLE": "行ける",
        "MEET_ONLY": "Meetなら行ける",
        "UNAVAILABLE": "行けない",
    }.get(status, status)
    return text_message(f"今日の{slot_label}ごはんは「{status_label}」で登録しました🍚")


def build_match_message(partner_name: str, frontend_url: str) -> dict[str, Any]:
    lines = [
        f"{partner_name or 'メンバー'}さんとマッチしました🎉",
        "",
        "▼一緒にご飯の予定を立てましょう",
        _login_url(frontend_url),
    ]
    return text_message("\n".join(lines))


def _time_label(time_slot: TimeSlotName) -> str:
    return "昼12:00" if time_slot == "DAY" else "夜20:00"


def build_group_meal_invite_message(
    title: str, date_label: str, time_slot: TimeSlotName, host_name: str, frontend_url: str
) -> dict[str, Any]:
    slot_label = "ランチ" if time_slot == "DAY" else "ディナー"
    lines = [f"{host_name or 'ホスト'}さんからGO飯のお誘いが届きました🍚"]
    if title:
        lines.append(title)
    lines += [f"{date_label} {slot_label}", "", "▼参加するかアプリで回答してください", _login_url(frontend_url)]
    return text_message("\n".join(lines))


def build_auto_group_meal_invite(
    group_meal_id: str,
    mode: str,
    member_names: list[str],
    time_slot: TimeSlotName,
    place_label: Optional[str],
    frontend_url: str,
) -> dict[str, Any]:
    """Invite for an auto-grouped meal, answered with GO / NOT_GO postbacks."""
    member_text = "、".join(f"{name}さん" for name in member_names) or "メンバーさん"
    time_label = _time_label(time_slot)
    postback_type = "REAL_GROUP_MEAL_INVITE" if mode == "REAL" else "MEET_GROUP_MEAL_INVITE"
    if mode == "REAL":
        body = f"{member_text}と{place_label or 'どこか'}で{time_label}に集合してGO飯に行きませんか？🍚"
        go_label, not_go_label = "行く🙆", "行かない🙅"
    else:
        body = f"{member_text}とMeetで{time_label}にGO飯しませんか？🍚"
        go_label, not_go_label = "参加する✅", "参加しない❎"
    body += f"\n\n▼詳細はこちら\n{_login_url(frontend_url)}"

    def _data(action: str) -> str:
        return json.dumps({"type": postback_type, "groupMealId": group_meal_id, "action": action})

    return buttons_template(body, [postback_action(go_label, _data("GO")), postback_action(not_go_label, _data("NOT_GO"))])


def build_group_meal_response_reply(action: str) -> dict[str, Any]:
    if action == "GO":
        return text_message("参加で登録しました！楽しんでください🍚")
    return text_message("不参加で登録しました。また次回お誘いします🙏")


def build_reminder_message(
    title: str, time_slot: TimeSlotName, place_label: Optional[str], meet_url: Optional[str]
) -> dict[str, Any]:
    lines = [f"今日は「{title or 'GO飯'}」の日です🍚", f"時間: {_time_label(time_slot)}"]
    if meet_url:
        lines.append(f"Meet: {meet_url}")
    elif place_label:
        lines.append(f"場所: {place_label}")
    return text_message("\n".join(lines))
