"""crossjdk - JDK runtime archives for cross-compiling Java, Groovy and Kotlin builds."""
