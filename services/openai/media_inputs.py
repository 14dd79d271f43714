"""Utilities to build multimodal input payloads for the Responses API."""

from typing import Any, Dict, List


def text_message(role: str, text: str) -> Dict[str, Any]:
    return {"type": "message", "role": role, "content": [{"type": "input_text", "text": text}]}


def build_text_inputs(system_prompt: str, *user_texts: str) -> List[Dict[str, Any]]:
    """Build a system message followed by one user message per text block."""
    inputs = [text_message("system", system_prompt)]
    inputs.extend(text_message("user", text) for text in user_texts if text)
    return inputs


def build_pair_inputs(system_prompt: str, user_prompt: str, *, rgb_url: str, thermal_url: str) -> List[Dict[str, Any]]:
    """Build the input array with the visible and thermal images as separate entries."""
    inputs = build_text_inputs(system_prompt, user_prompt)
    inputs.append(
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": "RGB (visible-spectrum) image:"},
                {"type": "input_image", "image_url": rgb_url},
                {"type": "input_text", "text": "Thermal (infrared) image of the same area:"},
                {"type": "input_image", "image_url": thermal_url},
            ],
        }
    )
    return inputs
