"""Infrastructure adapters: index backends, providers, cache, prompts"""
