from typing import TypedDict, List, Optional, Union, Literal, Dict, Any

from ._exceptions import ValidationError

Role = Literal["system", "user", "assistant", "tool"]
FinishReason = Literal["stop", "length"]
SearchMode = Literal["web", "academic", "sec"]
SearchRecencyFilter = Literal["hour", "day", "week", "month", "year"]
ReasoningEffort = Literal["minimal", "low", "medium", "high"]
SearchContextSize = Literal["low", "medium", "high"]
SearchType = Literal["fast", "pro", "auto"]
StreamMode = Literal["full", "concise"]
AsyncCompletionStatus = Literal["CREATED", "IN_PROGRESS", "COMPLETED", "FAILED"]


class URLObject(TypedDict, total=False):
    url: str


class VideoURLObject(TypedDict, total=False):
    url: str
    frame_interval: Union[str, int]


class TextChunk(TypedDict):
    type: Literal["text"]
    text: str


class ImageChunk(TypedDict):
    type: Literal["image_url"]
    image_url: Union[str, URLObject]


class FileChunk(TypedDict, total=False):
    type: Literal["file_url"]
    file_url: Union[str, URLObject]
    file_name: str


class PDFChunk(TypedDict):
    type: Literal["pdf_url"]
    pdf_url: Union[str, URLObject]


class VideoChunk(TypedDict):
    type: Literal["video_url"]
    video_url: Union[str, VideoURLObject]


ContentChunk = Union[TextChunk, ImageChunk, FileChunk, PDFChunk, VideoChunk]

MessageContent = Union[str, List[ContentChunk]]

# Discriminant -> field that must carry the payload.
CONTENT_CHUNK_FIELDS = {
    "text": "text",
    "image_url": "image_url",
    "file_url": "file_url",
    "pdf_url": "pdf_url",
    "video_url": "video_url",
}


class ToolFunction(TypedDict, total=False):
    name: str
    description: str
    parameters: Dict[str, Any]


class Tool(TypedDict, total=False):
    type: Literal["function"]
    function: ToolFunction


class ToolCallFunction(TypedDict, total=False):
    name: str
    arguments: str


class ToolCall(TypedDict, total=False):
    id: str
    type: Literal["function"]
    function: ToolCallFunction


class SearchResult(TypedDict, total=False):
    title: str
    url: str
    date: str
    last_updated: str
    snippet: str
    source: Literal["web", "attachment"]


class ReasoningStepWebSearch(TypedDict, total=False):
    search_keywords: List[str]
    search_results: List[SearchResult]


class ReasoningStepExecutePython(TypedDict, total=False):
    code: str
    result: str


class ReasoningStep(TypedDict, total=False):
    thought: str
    type: str
    web_search: ReasoningStepWebSearch
    execute_python: ReasoningStepExecutePython
    fetch_url_content: Dict[str, List[SearchResult]]
    file_attachment_search: Dict[str, List[str]]
    browser_agent: Dict[str, str]
    browser_tool_execution: Dict[str, Any]
    agent_progress: Dict[str, str]


class Message(TypedDict, total=False):
    role: Role
    content: MessageContent
    reasoning_steps: List[ReasoningStep]
    tool_calls: List[ToolCall]


class Choice(TypedDict, total=False):
    index: int
    message: Message
    delta: Message
    finish_reason: Optional[FinishReason]


class Cost(TypedDict, total=False):
    input_tokens_cost: float
    output_tokens_cost: float
    total_cost: float
    citation_tokens_cost: float
    reasoning_tokens_cost: float
    request_cost: float
    search_queries_cost: float


class Usage(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost: Cost
    citation_tokens: int
    num_search_queries: int
    reasoning_tokens: int
    search_context_size: str


class StreamChunk(TypedDict, total=False):
    id: str
    object: str
    created: int
    model: str
    choices: List[Choice]
    citations: List[str]
    search_results: List[SearchResult]
    status: Literal["PENDING", "COMPLETED"]
    type: Literal["message", "info", "end_of_stream"]
    usage: Usage


# Non-streaming completions share the chunk shape.
ChatCompletion = StreamChunk


class UserLocation(TypedDict):
    latitude: float
    longitude: float


class WebSearchOptions(TypedDict, total=False):
    user_location: UserLocation
    image_results_enhanced_relevance: bool
    search_context_size: SearchContextSize
    search_type: SearchType


class JSONSchema(TypedDict, total=False):
    name: str
    description: str
    schema: Dict[str, Any]
    strict: bool


class ResponseFormat(TypedDict, total=False):
    type: Literal["text", "json_schema", "regex"]
    json_schema: JSONSchema
    regex: Dict[str, str]


class SearchResultItem(TypedDict, total=False):
    title: str
    url: str
    snippet: str
    date: str
    last_updated: str


class SearchResponse(TypedDict, total=False):
    id: str
    results: List[SearchResultItem]
    server_time: str


class AsyncCompletion(TypedDict, total=False):
    id: str
    created_at: int
    model: str
    status: AsyncCompletionStatus
    started_at: int
    completed_at: int
    failed_at: int
    error_message: str
    response: ChatCompletion


class AsyncCompletionSummary(TypedDict, total=False):
    id: str
    created_at: int
    model: str
    status: AsyncCompletionStatus
    started_at: int
    completed_at: int
    failed_at: int


class AsyncCompletionList(TypedDict, total=False):
    requests: List[AsyncCompletionSummary]
    next_token: str


ChatMessages = Union[str, List[Message]]

ToolChoice = Union[Literal["auto", "none", "required"], Dict[str, Any]]

Tools = List[Tool]

SearchQuery = Union[str, List[str]]


def system_message(content: MessageContent) -> Message:
    return {"role": "system", "content": content}


def user_message(content: MessageContent) -> Message:
    return {"role": "user", "content": content}


def assistant_message(content: MessageContent) -> Message:
    return {"role": "assistant", "content": content}


def tool_message(content: MessageContent) -> Message:
    return {"role": "tool", "content": content}


def text_chunk(text: str) -> TextChunk:
    return {"type": "text", "text": text}


def image_chunk(url: str) -> ImageChunk:
    return {"type": "image_url", "image_url": {"url": url}}


def file_chunk(url: str, file_name: str = None) -> FileChunk:
    chunk: FileChunk = {"type": "file_url", "file_url": {"url": url}}
    if file_name is not None:
        chunk["file_name"] = file_name
    return chunk


def pdf_chunk(url: str) -> PDFChunk:
    return {"type": "pdf_url", "pdf_url": {"url": url}}


def video_chunk(url: str, frame_interval: Union[str, int] = None) -> VideoChunk:
    video_url: VideoURLObject = {"url": url}
    if frame_interval is not None:
        video_url["frame_interval"] = frame_interval
    return {"type": "video_url", "video_url": video_url}


def validate_content(content: Any) -> MessageContent:
    """Check that message content is a string or a list of known content chunks.

    Chunks are told apart by their ``type`` field; the field named after the
    type must be present and be a string URL or an object with a ``url``.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        raise ValidationError(f"content must be a string or a list of chunks, got {type(content).__name__}")

    for index, chunk in enumerate(content):
        if not isinstance(chunk, dict):
            raise ValidationError(f"content[{index}] must be an object")
        chunk_type = chunk.get("type")
        payload_field = CONTENT_CHUNK_FIELDS.get(chunk_type)
        if payload_field is None:
            raise ValidationError(f"content[{index}] has unknown chunk type: {chunk_type!r}")
        payload = chunk.get(payload_field)
        if chunk_type == "text":
            if not isinstance(payload, str):
                raise ValidationError(f"content[{index}].text must be a string")
        elif not isinstance(payload, str) and not (isinstance(payload, dict) and "url" in payload):
            raise ValidationError(f"content[{index}].{payload_field} must be a URL string or an object with a url")
    return content


def content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str):
                parts.append(part["text"])
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)
    return ""


def delta_text(chunk: StreamChunk) -> str:
    """Text carried by the first choice of a chunk (its delta, else its message)."""
    choices = chunk.get("choices") if isinstance(chunk, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    choice = choices[0]
    message = choice.get("delta") or choice.get("message")
    if not isinstance(message, dict):
        return ""
    return content_text(message.get("content"))
