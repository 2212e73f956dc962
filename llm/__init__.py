PROVIDERS = {
    "OpenAIProvider": "llm.openai_client",
    "NaiveProvider": "llm.naive_local",
}
