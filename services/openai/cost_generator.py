class CostGenerator:
	"""Estimate API cost for the analysis steps.

	Prices are USD per 1,000 tokens and should be kept up-to-date by the
	caller if pricing changes. Step estimates use rough token budgets: image
	inputs dominate the per-pair cost, the anomaly list dominates the report.
	"""

	DEFAULT_PRICING = {
		"gpt-5": {"input_per_1k": 0.00125, "output_per_1k": 0.01},
		"gpt-5-mini": {"input_per_1k": 0.00025, "output_per_1k": 0.002},
		"gpt-4.1": {"input_per_1k": 0.002, "output_per_1k": 0.008},
	}

	PAIR_INPUT_TOKENS = 3000
	PAIR_OUTPUT_TOKENS = 1200
	REPORT_BASE_INPUT_TOKENS = 2500
	REPORT_INPUT_TOKENS_PER_ANOMALY = 350
	REPORT_OUTPUT_TOKENS = 5000

	def __init__(self, pricing: dict | None = None):
		"""Create a CostGenerator.

		Args:
			pricing: Optional mapping of model -> {"input_per_1k": float, "output_per_1k": float}.
				When omitted, `DEFAULT_PRICING` will be used.
		"""
		self.pricing = pricing or dict(self.DEFAULT_PRICING)

	def estimate(self, input_tokens: int, output_tokens: int, model: str) -> dict:
		"""Estimate cost for a single API call.

		Returns:
			A dictionary with breakdown: input_tokens, output_tokens, model,
			input_cost, output_cost, total_cost.

		Raises:
			ValueError: If tokens are negative or model is not supported.
		"""
		if input_tokens < 0 or output_tokens < 0:
			raise ValueError("Token counts must be non-negative integers.")

		model = model.lower()
		if model not in self.pricing:
			raise ValueError(f"Unsupported model '{model}'. Supported: {', '.join(self.pricing.keys())}")

		rates = self.pricing[model]
		input_cost = (input_tokens / 1000.0) * rates["input_per_1k"]
		output_cost = (output_tokens / 1000.0) * rates["output_per_1k"]

		return {
			"model": model,
			"input_tokens": int(input_tokens),
			"output_tokens": int(output_tokens),
			"input_cost": round(input_cost, 8),
			"output_cost": round(output_cost, 8),
			"total_cost": round(input_cost + output_cost, 8),
		}

	def pair_analysis_estimate(self, pair_count: int, model: str) -> str | None:
		"""Return a display string like ``~$0.12`` for analysing ``pair_count`` pairs."""
		return self._display(
			self.PAIR_INPUT_TOKENS * pair_count,
			self.PAIR_OUTPUT_TOKENS * pair_count,
			model,
		)

	def report_estimate(self, anomaly_count: int, model: str) -> str | None:
		"""Return a display string for the rating and report calls."""
		return self._display(
			2 * self.REPORT_BASE_INPUT_TOKENS + 2 * self.REPORT_INPUT_TOKENS_PER_ANOMALY * anomaly_count,
			self.REPORT_OUTPUT_TOKENS,
			model,
		)

	def _display(self, input_tokens: int, output_tokens: int, model: str) -> str | None:
		try:
			cost = self.estimate(input_tokens=input_tokens, output_tokens=output_tokens, model=model)
		except ValueError:
			# Unknown model pricing: no estimate rather than a wrong one.
			return None
		return f"~${cost['total_cost']:.2f}"
