"""
Prompt templates and response schemas for the studio features.
Schemas use the Gemini OpenAPI subset (uppercase type names).
"""

import json


def language_name(language: str) -> str:
    return "Vietnamese" if language == "vi" else "English"


# ---- Schemas ----

SCRIPT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "synopsis": {"type": "STRING"},
        "scenes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "sceneNumber": {"type": "INTEGER"},
                    "visual": {"type": "STRING"},
                    "audio": {"type": "STRING"},
                    "durationSeconds": {"type": "NUMBER"},
                },
                "required": ["sceneNumber", "visual", "audio", "durationSeconds"],
            },
        },
    },
    "required": ["title", "synopsis", "scenes"],
}

NEWS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "headline": {"type": "STRING"},
        "intro": {"type": "STRING"},
        "body": {"type": "STRING"},
        "outro": {"type": "STRING"},
        "ticker_items": {"type": "ARRAY", "items": {"type": "STRING"}},
        "b_roll_prompt": {"type": "STRING"},
    },
    "required": ["headline", "intro", "body", "outro", "ticker_items", "b_roll_prompt"],
}

VIRAL_ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "hookScore": {"type": "NUMBER"},
        "retentionScore": {"type": "NUMBER"},
        "totalScore": {"type": "NUMBER"},
        "suggestions": {"type": "ARRAY", "items": {"type": "STRING"}},
        "viralTitle": {"type": "STRING"},
        "hashtags": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["hookScore", "retentionScore", "totalScore", "suggestions", "viralTitle", "hashtags"],
}

STORYBOARD_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "style": {"type": "STRING"},
        "scenes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "INTEGER"},
                    "visual_description": {"type": "STRING"},
                    "audio_script": {"type": "STRING"},
                    "camera_angle": {"type": "STRING"},
                    "prompt_optimized": {"type": "STRING"},
                    "voice_gender": {"type": "STRING", "enum": ["Male", "Female"]},
                },
                "required": [
                    "id", "visual_description", "audio_script",
                    "camera_angle", "prompt_optimized", "voice_gender",
                ],
            },
        },
    },
    "required": ["title", "style", "scenes"],
}

NEUTRAL_COLOR_GRADE = {
    "contrast": 100,
    "saturation": 100,
    "brightness": 100,
    "sepia": 0,
    "hueRotate": 0,
    "grayscale": 0,
    "blur": 0,
}


# ---- Prompts ----

def get_script_prompt(topic, style, duration, platform, target_audience, language) -> str:
    lang = "Respond in Vietnamese (Tiếng Việt)." if language == "vi" else "Respond in English."
    return f"""Create a video script about "{topic}".
Target Platform: {platform}, Audience: {target_audience}, Style: {style}, Duration: {duration}
{lang}
Format output as JSON with scenes, visual descriptions, and voiceover text."""


def get_news_prompt(headline: str, category: str, language: str) -> str:
    lang = "Tiếng Việt (Vietnamese)" if language == "vi" else "English"
    return f"""You are a professional TV News Director.
Create a structured broadcast script for a breaking news story.
Headline: "{headline}".
Category: "{category}".
Language: {lang}.

Structure required:
1. Headline: Catchy, short title.
2. Intro: Anchor greeting and hook (approx 10s).
3. Body: The main story details (approx 20s).
4. Outro: Sign off and call to action (approx 5s).
5. Ticker Items: 5 related short news snippets for the scrolling ticker.
6. B-Roll Prompt: An English prompt to generate a background image summarizing the story.

Return JSON."""


def get_refine_prompt(original_text: str, instruction: str, language: str) -> str:
    return (
        f'Refine text based on: "{instruction}". Original: "{original_text}". '
        f"Language: {language_name(language)}. Return ONLY refined text."
    )


def get_viral_analysis_prompt(script_content, language: str) -> str:
    script_text = json.dumps(script_content, ensure_ascii=False)
    return f"""Act as a Social Media Algorithm Expert. Analyze this video script for Viral Potential. Script: {script_text}
Task: Rate Hook (1-10), Retention (1-10), Total (0-100). Provide 3 suggestions, viral title, hashtags. Language: {language_name(language)}. Return JSON."""


def get_storyboard_prompt(topic: str, language: str, scene_count: int, mode: str) -> str:
    lang = (
        "Descriptions in Vietnamese, prompt_optimized in English."
        if language == "vi" else "Everything in English."
    )
    return f"""You are an Expert AI Film Director. Create storyboard for: "{topic}".
Mode: {mode}. Break into {scene_count} scenes.
For 'prompt_optimized', write a MASTERPIECE VIDEO PROMPT for Google Veo 3.1.
For 'audio_script', write voiceover.
Determine 'voice_gender'.
{lang} Return JSON."""


def get_chat_system_prompt(language: str) -> str:
    return f"""You are DMP Studio's expert AI Assistant.
Your role is to help with: Video Prompt Engineering, Script Writing, Directing advice, and Technical support for the studio app.
Be concise, professional, and creative. Current Language: {language_name(language)}"""


def get_enhance_video_prompt(user_prompt: str) -> str:
    return (
        f'Transform into cinematic Veo prompt: "{user_prompt}". '
        "Add camera, lighting, detail specs. Output ONLY enhanced prompt in English."
    )


def get_character_analysis_prompt() -> str:
    return "Analyze face, hair, age, features. Output descriptive visual profile."


def get_character_portrait_prompt(style: str, description: str) -> str:
    likeness = "Photorealistic, exact likeness." if "Digital Twin" in style else ""
    return f"Generate character portrait. Style: {style}. Features: {description}. {likeness} High res."


def get_style_edit_prompt(instruction: str) -> str:
    return f'Analyze image. Retain identity. Change: "{instruction}". Output prompt.'


def get_random_idea_prompt(category: str, language: str) -> str:
    return f'Generate creative video idea for "{category}". Language: {language}. One sentence.'


def get_viral_shorts_prompt(context: str) -> str:
    return (
        f'Based on "{context}", invent 3 viral segments. '
        "JSON: [{id, startTime, duration, viralScore, reason, caption}]."
    )


def get_creative_matrix_prompt(product_name: str, target_audience: str, language: str) -> str:
    return f"""Create Content Strategy Matrix for "{product_name}", audience "{target_audience}".
Dimensions: Angles(Educational,Entertaining,Emotional,Promotional) x Formats(Short Video,Carousel,Blog).
Return JSON {{productName, targetAudience, items:[{{id, angle, format, hook, content_outline, cta}}]}}. Language: {language}."""


def get_trending_prompt(niche: str, language: str) -> str:
    return f"""Find 5 hot trending topics for "{niche}" (last 48h) using Google Search.
JSON Array: [{{id, topic, volume(High/Rising), summary, video_hook}}]. Language: {language}."""


def get_color_grade_prompt(description: str) -> str:
    return (
        f'Convert "{description}" into CSS Filter params JSON '
        "{contrast, saturation, brightness, sepia, hueRotate, grayscale, blur}."
    )


def get_video_plan_prompt(input_text: str, language: str) -> str:
    return f"""Transform text into Video Plan. Text: "{input_text[:8000]}".
JSON: {{title, synopsis, scenes:[{{sceneNumber, visual, audio, durationSeconds}}]}}. Language: {language}."""


IMAGE_TAGS_PROMPT = (
    "Identify objects, style, color palette, and mood in this image. "
    "Return tags as JSON array of strings. e.g. ['cat', 'neon', 'cyberpunk']."
)

MAKEUP_PROMPT = (
    "Analyze this face and suggest a trendy makeup style description for an AI image editor. "
    "Keep it under 20 words."
)


def get_real_estate_prompt(features: list, agent_name: str, vibe: str) -> str:
    return f"""You are a professional Real Estate Copywriter. Write a short, engaging video script (approx 30-45 seconds) for an agent named "{agent_name}".
Property Features detected: {", ".join(features)}.
Vibe/Music Style: {vibe}.
Structure:
1. Hook (Grab attention)
2. Key Highlights (Weave features naturally)
3. Call to Action.
Output ONLY the script text in Vietnamese (Tiếng Việt). Make it sound natural, not robotic."""


def get_interactive_story_prompt(premise: str, language: str) -> str:
    return f"""Act as an expert Interactive Story Architect.
Create a branching story structure based on this premise: "{premise}".
Language: {language}.

Output a JSON array of nodes.
Each node structure:
{{
  "id": "unique_string_id",
  "title": "Short Node Title",
  "prompt": "Detailed visual description for video generation (English)",
  "narratorText": "The story narration text for this scene",
  "choices": [
    {{ "id": "c1", "label": "Choice Text", "nextNodeId": "target_node_id" }}
  ],
  "isStart": boolean (true only for the first node)
}}

Create at least 5 nodes with logical connections. Coordinates (x,y) are not needed in JSON."""


def get_music_prompt(description: str) -> str:
    return f"Music track: {description}. Lo-fi, instrumental background music."
