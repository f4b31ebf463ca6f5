from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined


class PromptManager:
    """渲染 prompts/ 目录下的 Jinja2 提示词模板。"""

    def __init__(self, template_dir: Optional[Path] = None, locale: str = "繁體中文"):
        if template_dir is None:
            template_dir = Path(__file__).parent / "prompts"

        # 提示词是纯文本，不做 HTML 转义；缺失变量直接报错
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.globals["locale"] = locale

    def render(self, template_name: str, **kwargs) -> str:
        return self.env.get_template(template_name).render(**kwargs)
